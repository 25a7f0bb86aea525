"""SQLAlchemy models for orders and field measurements.

Each table model converts to and from its domain entity. Entities are rebuilt
with ``restore`` so loading never records domain events.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from fieldops.domain.entities import FieldMeasurement, Order
from fieldops.domain.models import GameItem, OrderStatus, PaymentMethod, PaymentMethodDetails

Base = declarative_base()


class OrderDB(Base):
    """SQLAlchemy model for orders.

    Maps to domain entity: Order
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String(100), nullable=False, index=True)
    user_email = Column(String(255), nullable=False)
    status = Column(String(30), nullable=False, default=OrderStatus.PENDING_PAYMENT.value)
    payment_method = Column(String(30), nullable=False)
    payment_details = Column(JSON, nullable=True)  # PaymentMethodDetails, card payments only

    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    games = relationship(
        "OrderGameDB",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderGameDB.id",
    )

    __table_args__ = (
        Index('idx_orders_user_status', 'user_id', 'status'),
    )

    def to_domain_model(self) -> Order:
        details = PaymentMethodDetails(**self.payment_details) if self.payment_details else None
        return Order.restore(
            order_id=self.id,
            user_id=self.user_id,
            user_email=self.user_email,
            status=OrderStatus(self.status),
            payment_method=PaymentMethod(self.payment_method),
            games=[game.to_domain_model() for game in self.games],
            payment_method_details=details,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_domain_model(cls, order: Order) -> "OrderDB":
        details = order.payment_method_details
        return cls(
            user_id=order.user_id,
            user_email=order.user_email,
            status=order.status.value,
            payment_method=order.payment_method.value,
            payment_details=details.model_dump() if details else None,
            created_at=order.created_at,
            updated_at=order.updated_at,
            games=[OrderGameDB.from_domain_model(game) for game in order.games],
        )


class OrderGameDB(Base):
    """Game line item of an order."""
    __tablename__ = "order_games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(Integer, nullable=False)
    name = Column(String(200), nullable=False, default="")
    price = Column(Float, nullable=False, default=0.0)

    order = relationship("OrderDB", back_populates="games")

    def to_domain_model(self) -> GameItem:
        return GameItem(game_id=self.game_id, name=self.name, price=self.price)

    @classmethod
    def from_domain_model(cls, game: GameItem) -> "OrderGameDB":
        return cls(game_id=game.game_id, name=game.name, price=game.price)


class FieldMeasurementDB(Base):
    """SQLAlchemy model for field sensor measurements.

    Maps to domain entity: FieldMeasurement
    Indexed for per-field time range queries used by drought detection.
    """
    __tablename__ = "field_measurements"

    id = Column(Uuid, primary_key=True)

    field_id = Column(Uuid, nullable=False, index=True)
    soil_moisture = Column(Float, nullable=False)  # 0 to 100
    air_temperature = Column(Float, nullable=False)  # -50 to 80
    precipitation = Column(Float, nullable=False)  # mm
    collected_at = Column(DateTime(timezone=True), nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False)
    alert_recipient = Column(String(255), nullable=True)
    user_id = Column(String(100), nullable=True)

    __table_args__ = (
        Index('idx_field_collected_at', 'field_id', 'collected_at'),
    )

    def to_domain_model(self) -> FieldMeasurement:
        return FieldMeasurement.restore(
            measurement_id=self.id,
            field_id=self.field_id,
            soil_moisture=self.soil_moisture,
            air_temperature=self.air_temperature,
            precipitation=self.precipitation,
            collected_at=self.collected_at,
            received_at=self.received_at,
            alert_recipient=self.alert_recipient,
            user_id=self.user_id,
        )

    @classmethod
    def from_domain_model(cls, measurement: FieldMeasurement) -> "FieldMeasurementDB":
        return cls(
            id=measurement.id,
            field_id=measurement.field_id,
            soil_moisture=measurement.soil_moisture,
            air_temperature=measurement.air_temperature,
            precipitation=measurement.precipitation,
            collected_at=measurement.collected_at,
            received_at=measurement.received_at,
            alert_recipient=measurement.alert_recipient,
            user_id=measurement.user_id,
        )
