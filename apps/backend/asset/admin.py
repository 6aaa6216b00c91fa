from django.contrib import admin

from .models import Asset, AssetCategory


@admin.register(AssetCategory)
class AssetCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = ("name_serial_no", "model", "category")
    list_filter = ("category",)
    search_fields = ("name_serial_no", "model")
