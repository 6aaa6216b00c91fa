from django.db import models


class AssetCategory(models.Model):
    name = models.CharField(max_length=128, unique=True)
    description = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "asset categories"

    def __str__(self) -> str:
        return self.name


class Asset(models.Model):
    name_serial_no = models.CharField(max_length=255)
    model = models.CharField(max_length=255, blank=True)
    category = models.ForeignKey(AssetCategory, on_delete=models.PROTECT, related_name="assets")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name_serial_no"]

    def __str__(self) -> str:
        return f"{self.category.name}: {self.name_serial_no}"
