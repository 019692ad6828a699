from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ConversationKind(str, Enum):
    GENERAL = "general"
    ORDER_INQUIRY = "order_inquiry"
    PRICE_QUOTE = "price_quote"
    PRODUCT_AVAILABILITY = "product_availability"
    DELIVERY_STATUS = "delivery_status"
    PAYMENT_INQUIRY = "payment_inquiry"
    COMPLAINT = "complaint"
    TECHNICAL_SUPPORT = "technical_support"
    BULK_ORDER = "bulk_order"
    PARTNERSHIP = "partnership"


class BusinessPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AIProvider(str, Enum):
    CLAUDE = "claude"
    OPENAI = "openai"


class EmailType(str, Enum):
    ORDER_CONFIRMATION = "confirmacion_pedido"
    DELIVERY_UPDATE = "actualizacion_entrega"
    PAYMENT_REMINDER = "recordatorio_pago"
    PRODUCT_ALERT = "alerta_producto"
    PROMOTIONAL_OFFER = "oferta_promocional"
    MARKETING_CAMPAIGN = "campana_marketing"
    BUSINESS_UPDATE = "actualizacion_negocio"
    TECHNICAL_NOTICE = "notificacion_tecnica"


class Customer(BaseModel):
    """Domain model for a B2B customer"""
    id: int
    name: str
    email: str = ""
    is_vegan_preferred: bool = False
    is_active: bool = True

    class Config:
        from_attributes = True


class Product(BaseModel):
    """Domain model for a catalog product"""
    id: int
    name: str
    price: Decimal
    stock_quantity: int = 0
    is_active: bool = True
    description: str = ""

    class Config:
        from_attributes = True

    @property
    def is_available(self) -> bool:
        return self.is_active and self.stock_quantity > 0


class OrderRecord(BaseModel):
    """Domain model for a past customer order"""
    id: int
    customer_id: int
    total_amount: Decimal
    order_date: datetime
    notes: Optional[str] = None

    class Config:
        from_attributes = True
