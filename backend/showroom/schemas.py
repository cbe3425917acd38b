"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Annotated, Literal, Optional, Union
from datetime import date, datetime
from decimal import Decimal


RepairStatus = Literal["pending", "in_progress", "completed", "cancelled"]
PaymentMethod = Literal["cash", "transfer", "credit"]
PaymentStatus = Literal["pending", "partial", "paid"]
SourceType = Literal["customer", "supplier"]
StockOperation = Literal["add", "subtract"]
UserRole = Literal["admin", "cashier", "mechanic"]
VehicleSort = Literal["newest", "oldest", "price_asc", "price_desc", "year_asc", "year_desc"]

NonNegativeMoney = Annotated[Decimal, Field(ge=0, max_digits=15, decimal_places=2)]


# Users / auth
class UserBrief(BaseModel):
    """Brief user info for nested responses."""
    id: int
    username: str
    full_name: str
    role: str
    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserBrief):
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: Optional[str] = Field(default=None, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    full_name: str = Field(min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    role: UserRole


class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[str] = Field(default=None, max_length=100)
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(min_length=6, max_length=128)


class ResetPasswordRequest(BaseModel):
    """Leave new_password empty to have a temporary one generated."""
    new_password: Optional[str] = Field(default=None, min_length=6, max_length=128)


class ResetPasswordResponse(BaseModel):
    user: UserResponse
    temporary_password: Optional[str] = None


# Customers / suppliers
class CustomerCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = None
    id_card_number: Optional[str] = Field(default=None, max_length=50)


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = None
    id_card_number: Optional[str] = Field(default=None, max_length=50)


class CustomerResponse(CustomerCreate):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SupplierCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    contact_person: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = None


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    contact_person: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = None
    is_active: Optional[bool] = None


class SupplierResponse(SupplierCreate):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CustomerListResponse(BaseModel):
    items: list[CustomerResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class SupplierListResponse(BaseModel):
    items: list[SupplierResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# Vehicles
class VehicleBrandCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class VehicleBrandResponse(VehicleBrandCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


class VehicleCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    brand_id: int
    model: str = Field(min_length=1, max_length=100)
    year: int = Field(ge=1980)
    color: Optional[str] = Field(default=None, max_length=30)
    license_plate: Optional[str] = Field(default=None, max_length=20)
    chassis_number: Optional[str] = Field(default=None, max_length=50)
    engine_number: Optional[str] = Field(default=None, max_length=50)
    engine_capacity: Optional[str] = Field(default=None, max_length=20)
    fuel_type: Optional[str] = Field(default=None, max_length=20)
    transmission_type: Optional[str] = Field(default=None, max_length=20)
    odometer: int = Field(default=0, ge=0)
    source_type: SourceType = "supplier"
    source_id: Optional[int] = None
    condition_status: Literal["excellent", "good", "fair", "poor", "needs_repair"] = "good"
    purchase_price: Decimal = Field(gt=0, max_digits=15, decimal_places=2)
    notes: Optional[str] = None


class VehicleUpdate(BaseModel):
    """Descriptive fields only; status and cost fields are owned by workflows."""
    model: Optional[str] = Field(default=None, min_length=1, max_length=100)
    year: Optional[int] = Field(default=None, ge=1980)
    color: Optional[str] = Field(default=None, max_length=30)
    license_plate: Optional[str] = Field(default=None, max_length=20)
    chassis_number: Optional[str] = Field(default=None, max_length=50)
    engine_number: Optional[str] = Field(default=None, max_length=50)
    engine_capacity: Optional[str] = Field(default=None, max_length=20)
    fuel_type: Optional[str] = Field(default=None, max_length=20)
    transmission_type: Optional[str] = Field(default=None, max_length=20)
    odometer: Optional[int] = Field(default=None, ge=0)
    condition_status: Optional[Literal["excellent", "good", "fair", "poor", "needs_repair"]] = None
    notes: Optional[str] = None


class VehicleSellingPriceUpdate(BaseModel):
    selling_price: Decimal = Field(gt=0, max_digits=15, decimal_places=2)


class VehicleBrief(BaseModel):
    id: int
    code: str
    model: str
    year: int
    status: str
    model_config = ConfigDict(from_attributes=True)


class VehicleResponse(VehicleBrief):
    brand_id: int
    brand: Optional[VehicleBrandResponse] = None
    color: Optional[str] = None
    license_plate: Optional[str] = None
    odometer: int
    source_type: str
    source_id: Optional[int] = None
    condition_status: str
    purchase_price: Decimal
    repair_cost: Decimal
    hpp_price: Decimal
    selling_price: Optional[Decimal] = None
    sold_price: Optional[Decimal] = None
    sold_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class VehicleListResponse(BaseModel):
    items: list[VehicleResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# Spare parts
class SparePartCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    unit: str = Field(default="pcs", max_length=20)
    purchase_price: NonNegativeMoney
    selling_price: NonNegativeMoney
    stock_quantity: int = Field(default=0, ge=0)
    minimum_stock: int = Field(default=0, ge=0)


class SparePartUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    unit: Optional[str] = Field(default=None, max_length=20)
    purchase_price: Optional[NonNegativeMoney] = None
    selling_price: Optional[NonNegativeMoney] = None
    minimum_stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class SparePartResponse(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit: str
    purchase_price: Decimal
    selling_price: Decimal
    stock_quantity: int
    minimum_stock: int
    is_active: bool
    is_low_stock: bool = False
    model_config = ConfigDict(from_attributes=True)


class SparePartCategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None


class SparePartCategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class SparePartCategoryResponse(SparePartCategoryCreate):
    id: int
    is_active: bool
    spare_part_count: int = 0
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SparePartCategoryListResponse(BaseModel):
    items: list[SparePartCategoryResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class SparePartCategoryStats(BaseModel):
    category_id: int
    category_name: str
    part_count: int
    total_stock: int
    low_stock_count: int
    total_value: Decimal
    average_price: Decimal


class SparePartListResponse(BaseModel):
    items: list[SparePartResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class StockUpdateRequest(BaseModel):
    quantity: int = Field(gt=0)
    operation: StockOperation


class BulkStockUpdateItem(StockUpdateRequest):
    spare_part_id: int


class BulkStockUpdateRequest(BaseModel):
    items: list[BulkStockUpdateItem] = Field(min_length=1)


class StockAvailabilityResponse(BaseModel):
    spare_part_id: int
    quantity: int
    available: bool


# Repair orders
class RepairSparePartRequest(BaseModel):
    spare_part_id: int
    quantity_used: int = Field(ge=1)


class RepairOrderCreate(BaseModel):
    vehicle_id: int
    mechanic_id: int
    description: str = Field(min_length=5)
    estimated_cost: NonNegativeMoney = Decimal("0")
    notes: Optional[str] = None


class RepairOrderUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=5)
    estimated_cost: Optional[NonNegativeMoney] = None
    notes: Optional[str] = None


class RepairProgressUpdate(BaseModel):
    status: RepairStatus
    actual_cost: Optional[NonNegativeMoney] = None
    notes: Optional[str] = None
    spare_parts: list[RepairSparePartRequest] = Field(default_factory=list)


class RepairSparePartResponse(BaseModel):
    id: int
    repair_order_id: int
    spare_part_id: int
    spare_part_code: Optional[str] = None
    spare_part_name: Optional[str] = None
    quantity_used: int
    unit_price: Decimal
    total_price: Decimal
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RepairOrderResponse(BaseModel):
    id: int
    code: str
    vehicle_id: int
    mechanic_id: int
    assigned_by_id: int
    description: str
    estimated_cost: Decimal
    actual_cost: Decimal
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    vehicle: Optional[VehicleBrief] = None
    mechanic: Optional[UserBrief] = None
    assigned_by: Optional[UserBrief] = None
    spare_parts: list[RepairSparePartResponse] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class RepairOrderListResponse(BaseModel):
    items: list[RepairOrderResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class RepairStatsResponse(BaseModel):
    total_repairs: int
    pending_repairs: int
    in_progress_repairs: int
    completed_repairs: int
    cancelled_repairs: int
    total_estimated_cost: Decimal
    total_actual_cost: Decimal
    average_completion_hours: float


class MechanicWorkloadItem(BaseModel):
    mechanic_id: int
    mechanic_name: str
    pending_repairs: int
    in_progress_repairs: int
    total_active: int


# Transactions
class SalesTransactionCreate(BaseModel):
    customer_id: int
    vehicle_id: int
    selling_price: Decimal = Field(gt=0, max_digits=15, decimal_places=2)
    payment_method: PaymentMethod = "cash"
    payment_status: Optional[PaymentStatus] = None
    down_payment: NonNegativeMoney = Decimal("0")
    transaction_date: Optional[date] = None
    notes: Optional[str] = None


class SalesTransactionUpdate(BaseModel):
    selling_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=15, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    down_payment: Optional[NonNegativeMoney] = None
    notes: Optional[str] = None


class SalesPaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    down_payment: Optional[NonNegativeMoney] = None
    remaining_payment: Optional[NonNegativeMoney] = None
    notes: Optional[str] = None


class SalesTransactionResponse(BaseModel):
    id: int
    invoice_number: str
    transaction_date: date
    customer_id: int
    vehicle_id: int
    hpp_price: Decimal
    selling_price: Decimal
    profit: Decimal
    payment_method: str
    payment_status: str
    down_payment: Decimal
    remaining_payment: Decimal
    notes: Optional[str] = None
    processed_by_id: int
    customer: Optional[CustomerResponse] = None
    vehicle: Optional[VehicleBrief] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SalesTransactionListResponse(BaseModel):
    items: list[SalesTransactionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class PurchaseTransactionCreate(BaseModel):
    source_type: SourceType
    source_id: int
    vehicle_id: int
    purchase_price: Decimal = Field(gt=0, max_digits=15, decimal_places=2)
    payment_method: PaymentMethod = "cash"
    payment_status: PaymentStatus = "pending"
    transaction_date: Optional[date] = None
    notes: Optional[str] = None


class PurchasePaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    notes: Optional[str] = None


class PurchaseTransactionResponse(BaseModel):
    id: int
    invoice_number: str
    transaction_date: date
    source_type: str
    source_id: int
    vehicle_id: int
    purchase_price: Decimal
    payment_method: str
    payment_status: str
    notes: Optional[str] = None
    processed_by_id: int
    vehicle: Optional[VehicleBrief] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PurchaseTransactionListResponse(BaseModel):
    items: list[PurchaseTransactionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# Dashboard
class DashboardOverview(BaseModel):
    metric_date: date
    vehicles_available: int = 0
    vehicles_in_repair: int = 0
    vehicles_sold_today: int = 0
    revenue_today: Decimal = Decimal("0")
    profit_today: Decimal = Decimal("0")
    pending_repairs: int = 0
    low_stock_items: int = 0
    model_config = ConfigDict(from_attributes=True)


class SalesTransactionRow(BaseModel):
    kind: Literal["sales"] = "sales"
    id: int
    invoice_number: str
    transaction_date: date
    amount: Decimal
    profit: Decimal
    payment_status: str
    customer_name: Optional[str] = None
    vehicle_code: Optional[str] = None


class PurchaseTransactionRow(BaseModel):
    kind: Literal["purchase"] = "purchase"
    id: int
    invoice_number: str
    transaction_date: date
    amount: Decimal
    payment_status: str
    source_type: str
    vehicle_code: Optional[str] = None


TransactionRow = Annotated[
    Union[SalesTransactionRow, PurchaseTransactionRow],
    Field(discriminator="kind"),
]


class PendingRepairItem(BaseModel):
    id: int
    code: str
    vehicle_code: Optional[str] = None
    mechanic_name: Optional[str] = None
    status: str
    estimated_cost: Decimal
    created_at: Optional[datetime] = None


class LowStockItem(BaseModel):
    id: int
    code: str
    name: str
    stock_quantity: int
    minimum_stock: int


class AvailableVehicleItem(BaseModel):
    id: int
    code: str
    brand_name: Optional[str] = None
    model: str
    year: int
    hpp_price: Decimal
    selling_price: Optional[Decimal] = None


class BaseDashboardResponse(BaseModel):
    overview: DashboardOverview
    recent_transactions: list[TransactionRow]
    pending_repairs: list[PendingRepairItem]
    low_stock_items: list[LowStockItem]
    available_vehicles: list[AvailableVehicleItem]


class MonthlyStats(BaseModel):
    month: int
    year: int
    total_purchase: Decimal
    total_sales: Decimal
    total_repair_cost: Decimal
    total_profit: Decimal
    vehicles_purchased: int
    vehicles_sold: int
    vehicles_in_stock: int


class TopPerformance(BaseModel):
    top_brand: Optional[str] = None
    top_brand_sales: int = 0
    top_mechanic: Optional[str] = None
    top_mechanic_repairs: int = 0
    highest_profit_invoice: Optional[str] = None
    highest_profit: Decimal = Decimal("0")


class AdminDashboardResponse(BaseDashboardResponse):
    monthly_stats: MonthlyStats
    top_performance: TopPerformance


class CashierDashboardResponse(BaseDashboardResponse):
    today_transactions: list[TransactionRow]
    pending_payments: list[SalesTransactionRow]


class RequiredPartItem(BaseModel):
    spare_part_id: int
    code: str
    name: str
    quantity_used: int
    stock_quantity: int


class MechanicDashboardResponse(BaseModel):
    assigned_repairs: list[PendingRepairItem]
    completed_today: int
    required_parts: list[RequiredPartItem]


class DailyClosingCreate(BaseModel):
    closing_date: date
    cash_in_hand: NonNegativeMoney = Decimal("0")
    notes: Optional[str] = None


class DailyClosingResponse(BaseModel):
    id: int
    closing_date: date
    total_purchase: Decimal
    total_sales: Decimal
    total_repair_cost: Decimal
    total_profit: Decimal
    cash_in_hand: Decimal
    notes: Optional[str] = None
    closed_by_id: int
    model_config = ConfigDict(from_attributes=True)


class MonthlyClosingCreate(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000)
    notes: Optional[str] = None


class MonthlyClosingResponse(BaseModel):
    id: int
    month: int
    year: int
    total_purchase: Decimal
    total_sales: Decimal
    total_repair_cost: Decimal
    total_profit: Decimal
    vehicles_purchased: int
    vehicles_sold: int
    vehicles_in_stock: int
    notes: Optional[str] = None
    closed_by_id: int
    model_config = ConfigDict(from_attributes=True)
