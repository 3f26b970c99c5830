"""Column names of the three studio exports.

The exports keep the header text of the booking system, so these constants
are the single place that spells them out.
"""

# Intake ("first visit") export
INTAKE_FIRST_NAME = "First name"
INTAKE_LAST_NAME = "Last name"
INTAKE_EMAIL = "Email"
INTAKE_PHONE = "Phone number"
INTAKE_PAYMENT_METHOD = "Payment method"
INTAKE_MEMBERSHIP = "Membership used"
INTAKE_FIRST_VISIT_AT = "First visit at"
INTAKE_FIRST_VISIT = "First visit"
INTAKE_LOCATION = "First visit location"
INTAKE_VISIT_TYPE = "Visit type"
INTAKE_HOME_LOCATION = "Home location"

# Added by the identity linker
STAFF = "Teacher"

INTAKE_COLUMNS = [
    INTAKE_FIRST_NAME,
    INTAKE_LAST_NAME,
    INTAKE_EMAIL,
    INTAKE_PHONE,
    INTAKE_PAYMENT_METHOD,
    INTAKE_MEMBERSHIP,
    INTAKE_FIRST_VISIT_AT,
    INTAKE_FIRST_VISIT,
    INTAKE_LOCATION,
    INTAKE_VISIT_TYPE,
    INTAKE_HOME_LOCATION,
]

# Attendance / bookings export
ATT_SALE_DATE = "Sale Date"
ATT_CLASS_NAME = "Class Name"
ATT_CLASS_DATE = "Class Date"
ATT_LOCATION = "Location"
ATT_STAFF = STAFF
ATT_EMAIL = "Customer Email"
ATT_PAYMENT_METHOD = "Payment Method"
ATT_MEMBERSHIP = "Membership used"
ATT_SALE_VALUE = "Sale Value"
ATT_TAX = "Sales tax"
ATT_CANCELLED = "Cancelled"
ATT_LATE_CANCELLED = "Late Cancelled"
ATT_NO_SHOW = "No Show"
ATT_SOLD_BY = "Sold by"
ATT_REFUNDED = "Refunded"
ATT_HOME_LOCATION = "Home location"

ATTENDANCE_COLUMNS = [
    ATT_SALE_DATE,
    ATT_CLASS_NAME,
    ATT_CLASS_DATE,
    ATT_LOCATION,
    ATT_STAFF,
    ATT_EMAIL,
    ATT_PAYMENT_METHOD,
    ATT_MEMBERSHIP,
    ATT_SALE_VALUE,
    ATT_TAX,
    ATT_CANCELLED,
    ATT_LATE_CANCELLED,
    ATT_NO_SHOW,
    ATT_SOLD_BY,
    ATT_REFUNDED,
    ATT_HOME_LOCATION,
]

ATTENDANCE_FLAGS = [ATT_CANCELLED, ATT_LATE_CANCELLED, ATT_NO_SHOW, ATT_REFUNDED]

# Sales export
SALE_CATEGORY = "Category"
SALE_ITEM = "Item"
SALE_DATE = "Date"
SALE_VALUE = "Sale value"
SALE_TAX = "Tax"
SALE_REFUNDED = "Refunded"
SALE_PAYMENT_METHOD = "Payment method"
SALE_PAYMENT_STATUS = "Payment status"
SALE_SOLD_BY = "Sold by"
SALE_PAYER_EMAIL = "Paying Customer email"
SALE_PAYER_NAME = "Paying Customer name"
SALE_CUSTOMER_EMAIL = "Customer email"
SALE_CUSTOMER_NAME = "Customer name"
SALE_LOCATION = "Location"
SALE_NOTE = "Note"

SALES_COLUMNS = [
    SALE_CATEGORY,
    SALE_ITEM,
    SALE_DATE,
    SALE_VALUE,
    SALE_TAX,
    SALE_REFUNDED,
    SALE_PAYMENT_METHOD,
    SALE_PAYMENT_STATUS,
    SALE_SOLD_BY,
    SALE_PAYER_EMAIL,
    SALE_PAYER_NAME,
    SALE_CUSTOMER_EMAIL,
    SALE_CUSTOMER_NAME,
    SALE_LOCATION,
    SALE_NOTE,
]

# Derived columns added during normalization
PERIOD = "period"
ROW_ORDER = "row_order"
REASON = "reason"
