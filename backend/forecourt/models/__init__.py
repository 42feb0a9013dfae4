from .locations import Location, LocationConfig
from .catalog import Product, PaymentMethod
from .fuel import Tank, TankCalibrationPoint, Dispenser, Hose, MeterHistoryRecord
from .shifts import ShiftRecord, ShiftPaymentBreakdown, ProductSaleHistory
from .cash import CashLedger, CashLedgerEntry
from .audit import AuditEvent

__all__ = [
    'Location', 'LocationConfig',
    'Product', 'PaymentMethod',
    'Tank', 'TankCalibrationPoint', 'Dispenser', 'Hose', 'MeterHistoryRecord',
    'ShiftRecord', 'ShiftPaymentBreakdown', 'ProductSaleHistory',
    'CashLedger', 'CashLedgerEntry',
    'AuditEvent',
]
