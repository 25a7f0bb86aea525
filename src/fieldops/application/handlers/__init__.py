"""Domain event handlers that publish notifications."""

from .base import NotificationHandler
from .orders import (
    OrderCreatedEventHandler,
    OrderStatusChangedEventHandler,
    PaymentMethodSetEventHandler,
)
from .measurements import (
    DroughtAlertRequiredEventHandler,
    ExcessiveRainfallAlertHandler,
    ExtremeHeatAlertHandler,
    FreezingTemperatureAlertHandler,
    ThresholdAlertHandler,
)
from .analysis import (
    FieldAnalysisHandler,
    FieldHistory,
    HeatStressAnalysisHandler,
    IrrigationAnalysisHandler,
    PestRiskAnalysisHandler,
)

__all__ = [
    "NotificationHandler",
    "OrderCreatedEventHandler",
    "OrderStatusChangedEventHandler",
    "PaymentMethodSetEventHandler",
    "DroughtAlertRequiredEventHandler",
    "ThresholdAlertHandler",
    "ExtremeHeatAlertHandler",
    "FreezingTemperatureAlertHandler",
    "ExcessiveRainfallAlertHandler",
    "FieldAnalysisHandler",
    "FieldHistory",
    "HeatStressAnalysisHandler",
    "IrrigationAnalysisHandler",
    "PestRiskAnalysisHandler",
]
