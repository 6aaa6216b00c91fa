from rest_framework import serializers

from .models import Asset


class AssetSummarySerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True)

    class Meta:
        model = Asset
        fields = ["id", "name_serial_no", "model", "category", "category_name"]
