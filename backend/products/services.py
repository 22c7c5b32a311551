from .models import Product, ProductVariant
import logging

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Read-only catalog lookups used by ordering flows.

    Lookups return None for anything that cannot be ordered (missing, inactive,
    or a variant that belongs to another product) so callers decide how to report it.
    """

    @staticmethod
    def get_orderable_product(product_id):
        return Product.objects.filter(id=product_id, is_active=True).first()

    @staticmethod
    def get_orderable_variant(product, variant_id):
        if variant_id is None:
            return None
        return ProductVariant.objects.filter(
            id=variant_id, product=product, is_active=True
        ).first()
