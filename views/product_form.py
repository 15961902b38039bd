"""
Product create/edit form controller
"""

from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Set

from config import FORM_CONFIG
from core.exceptions import NetworkError, ValidationError
from core.logging_config import get_logger
from events import event_bus as default_event_bus, EventBus, EventTypes
from api.models import Product, ProductDraft
from .validators import (
    integer, max_length, max_value, min_length, min_value, number, required,
    to_decimal, to_int, validate_fields,
)

logger = get_logger(__name__)

LIMITS = FORM_CONFIG["product"]

PRODUCT_RULES = {
    "name": [required(), min_length(LIMITS["name"]["min_length"]), max_length(LIMITS["name"]["max_length"])],
    "category": [required(), min_length(LIMITS["category"]["min_length"]), max_length(LIMITS["category"]["max_length"])],
    "supplier": [required(), min_length(LIMITS["supplier"]["min_length"]), max_length(LIMITS["supplier"]["max_length"])],
    "price": [required(), number(), min_value(LIMITS["price"]["min"]), max_value(LIMITS["price"]["max"])],
    "stock": [required(), integer(), min_value(LIMITS["stock"]["min"]), max_value(LIMITS["stock"]["max"])],
}


class ProductForm:
    """Holds form values, validates them locally and saves through the API"""

    FIELDS = tuple(PRODUCT_RULES)

    def __init__(self,
                 api,
                 product_id: Optional[int] = None,
                 on_saved: Optional[Callable[[Product], None]] = None,
                 bus: Optional[EventBus] = None):
        """
        Args:
            api: InventoryApiClient (or anything with the same product methods)
            product_id: Product to edit; None creates a new product
            on_saved: Called with the saved product after a successful submit
            bus: Event bus (defaults to the global bus)
        """
        self.api = api
        self.product_id = product_id
        self.on_saved = on_saved
        self.bus = bus or default_event_bus

        self.values: Dict[str, Any] = {name: "" for name in self.FIELDS}
        self.touched: Set[str] = set()
        self.field_errors: Dict[str, str] = {}
        self.is_loading = False
        self.error_message: Optional[str] = None

    @property
    def is_edit_mode(self) -> bool:
        return self.product_id is not None

    def set_value(self, field_name: str, value: Any):
        if field_name not in self.values:
            raise KeyError(f"Unknown product field: {field_name}")
        self.values[field_name] = value
        self.touched.add(field_name)
        self.field_errors = validate_fields(self.values, PRODUCT_RULES)

    def patch(self, **values):
        for field_name, value in values.items():
            self.set_value(field_name, value)

    async def load(self) -> Optional[Product]:
        """Pre-fill the form with the product being edited"""
        if not self.is_edit_mode:
            return None

        self.is_loading = True
        self.error_message = None
        try:
            product = await self.api.get_product(self.product_id)
        except NetworkError as e:
            self.error_message = e.message
            return None
        finally:
            self.is_loading = False

        self.values.update({
            "name": product.name,
            "category": product.category,
            "supplier": product.supplier or "",
            "price": product.price,
            "stock": product.stock,
        })
        return product

    def validate(self) -> Dict[str, str]:
        self.field_errors = validate_fields(self.values, PRODUCT_RULES)
        return self.field_errors

    def get_error_message(self, field_name: str) -> str:
        """Error to display under a field; untouched fields show nothing"""
        if field_name not in self.touched:
            return ""
        return self.field_errors.get(field_name, "")

    def to_draft(self) -> ProductDraft:
        """
        Build the request payload.

        Raises:
            ValidationError: If any field is invalid
        """
        errors = self.validate()
        if errors:
            self.touched.update(self.FIELDS)
            raise ValidationError(errors)

        return ProductDraft(
            name=str(self.values["name"]).strip(),
            category=str(self.values["category"]).strip(),
            supplier=str(self.values["supplier"]).strip(),
            price=to_decimal(self.values["price"]) or Decimal("0"),
            stock=to_int(self.values["stock"]) or 0,
        )

    async def submit(self) -> Optional[Product]:
        """
        Create or update the product.

        Returns:
            The saved product, or None when the service refused it
            (error_message is set)

        Raises:
            ValidationError: If the form is invalid; nothing is sent
        """
        draft = self.to_draft()

        self.is_loading = True
        self.error_message = None
        try:
            if self.is_edit_mode:
                product = await self.api.update_product(self.product_id, draft)
            else:
                product = await self.api.create_product(draft)
        except NetworkError as e:
            self.error_message = e.message
            logger.warning(f"Saving product failed: {e.message}")
            return None
        finally:
            self.is_loading = False

        event_type = EventTypes.PRODUCT_UPDATED if self.is_edit_mode else EventTypes.PRODUCT_CREATED
        self.bus.emit(event_type, {"product_id": product.id, "name": product.name}, source="product_form")
        logger.info(f"Saved product #{product.id} ({product.name})")

        if self.on_saved:
            self.on_saved(product)

        return product
