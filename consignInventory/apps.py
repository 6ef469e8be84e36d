from django.apps import AppConfig


class ConsignInventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "consignInventory"
    verbose_name = "Consignment Inventory"
