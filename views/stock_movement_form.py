"""
Stock movement registration form controller
"""

from typing import Any, Callable, Dict, Optional

from config import FORM_CONFIG
from core.exceptions import NetworkError, ValidationError
from core.logging_config import get_logger
from events import event_bus as default_event_bus, EventBus, EventTypes
from api.models import Product, StockMovement, StockMovementRequest, StockMovementType
from .validators import (
    MSG_REQUIRED, integer, is_blank, max_value, min_value, required, to_int, validate_fields,
)

logger = get_logger(__name__)

LIMITS = FORM_CONFIG["stock_movement"]


def parse_movement_type(value: Any) -> Optional[StockMovementType]:
    """Accept the enum, its name (INBOUND) or its wire value (ENTRADA)"""
    if isinstance(value, StockMovementType):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip().upper()
    for movement_type in StockMovementType:
        if text in (movement_type.name, movement_type.value):
            return movement_type
    return None


def movement_type():
    def rule(value):
        if is_blank(value):
            return MSG_REQUIRED
        return None if parse_movement_type(value) else "Unknown movement type"
    return rule


MOVEMENT_RULES = {
    "product_id": [required(), integer(), min_value(1)],
    "type": [movement_type()],
    "quantity": [required(), integer(), min_value(LIMITS["quantity"]["min"]), max_value(LIMITS["quantity"]["max"])],
}


class StockMovementForm:
    """Registers INBOUND/OUTBOUND movements and keeps the product's stock on display"""

    def __init__(self,
                 api,
                 product_id: Optional[int] = None,
                 on_registered: Optional[Callable[[StockMovement], None]] = None,
                 bus: Optional[EventBus] = None):
        self.api = api
        self.on_registered = on_registered
        self.bus = bus or default_event_bus

        self.values: Dict[str, Any] = {"product_id": product_id or "", "type": "", "quantity": ""}
        self.field_errors: Dict[str, str] = {}
        self.product: Optional[Product] = None
        self.is_loading = False
        self.error_message: Optional[str] = None
        self.success_message: Optional[str] = None

    def set_value(self, field_name: str, value: Any):
        if field_name not in self.values:
            raise KeyError(f"Unknown movement field: {field_name}")
        self.values[field_name] = value

    async def load_product(self, product_id: Optional[int] = None) -> Optional[Product]:
        """Fetch the product so its current stock can be shown"""
        product_id = product_id if product_id is not None else to_int(self.values["product_id"])
        if product_id is None:
            return None

        try:
            self.product = await self.api.get_product(product_id)
        except NetworkError as e:
            self.error_message = e.message
            return None

        self.values["product_id"] = product_id
        return self.product

    def validate(self) -> Dict[str, str]:
        self.field_errors = validate_fields(self.values, MOVEMENT_RULES)
        return self.field_errors

    def to_request(self) -> StockMovementRequest:
        """
        Raises:
            ValidationError: If any field is invalid
        """
        errors = self.validate()
        if errors:
            raise ValidationError(errors)

        return StockMovementRequest(
            product_id=to_int(self.values["product_id"]),
            type=parse_movement_type(self.values["type"]),
            quantity=to_int(self.values["quantity"]),
        )

    async def submit(self) -> Optional[StockMovement]:
        """
        Register the movement.

        Returns:
            The registered movement, or None when the service rejected it
            (error_message is set and the displayed stock is unchanged)

        Raises:
            ValidationError: If the form is invalid; nothing is sent
        """
        request = self.to_request()

        self.is_loading = True
        self.error_message = None
        self.success_message = None
        try:
            movement = await self.api.register_stock_movement(request)
        except NetworkError as e:
            self.error_message = e.message
            logger.warning(f"Stock movement rejected for product #{request.product_id}: {e.message}")
            self.bus.emit(EventTypes.STOCK_MOVEMENT_REJECTED, {
                "product_id": request.product_id,
                "type": request.type.name,
                "quantity": request.quantity,
                "error": e.message,
            }, source="stock_movement_form")
            return None
        finally:
            self.is_loading = False

        self.success_message = (f"Movement registered. Previous stock: {movement.stock_before}, "
                                f"new stock: {movement.stock_after}")
        logger.info(f"{movement.type.name} of {movement.quantity} on product #{movement.product_id}: "
                    f"{movement.stock_before} -> {movement.stock_after}")
        self.bus.emit(EventTypes.STOCK_MOVEMENT_REGISTERED, {
            "movement_id": movement.id,
            "product_id": movement.product_id,
            "type": movement.type.name,
            "quantity": movement.quantity,
            "stock_before": movement.stock_before,
            "stock_after": movement.stock_after,
        }, source="stock_movement_form")

        self.values.update({"type": "", "quantity": ""})

        if self.product is not None and self.product.id == movement.product_id:
            await self.load_product(movement.product_id)

        if self.on_registered:
            self.on_registered(movement)

        return movement
