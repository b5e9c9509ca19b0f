"""Engine constants and display labels."""

from core.config import LEDGER_PAGE_SIZE, LEDGER_BATCH_SIZE

# Range tags accepted by the date range resolver
RANGE_TAGS = ("week", "month", "quarter", "year")

# Ledger listing
ITEMS_PER_PAGE = LEDGER_PAGE_SIZE
INFINITE_SCROLL_BATCH = LEDGER_BATCH_SIZE
SORT_KEYS = ("date-desc", "date-asc", "price-desc", "price-asc")
DEFAULT_SORT_KEY = "date-desc"

# Virtual ledger items
VIRTUAL_ID_PREFIX = "virtual-"
NO_PATIENT_NAME = "Sin paciente"
VIRTUAL_DESCRIPTION_FALLBACK = "Sesión sin pago registrado"
UNNAMED_PATIENT = "Sin nombre"

# Working hours shown in the sessions-by-hour series (inclusive)
WORKING_HOURS_START = 8
WORKING_HOURS_END = 20

TOP_PATIENTS_LIMIT = 5

# Labels (Python weekday(): 0=Monday ... 6=Sunday)
WEEKDAY_LABELS = ["Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"]
MONTH_LABELS = [
    "Ene", "Feb", "Mar", "Abr", "May", "Jun",
    "Jul", "Ago", "Sep", "Oct", "Nov", "Dic",
]
WEEK_OF_MONTH_LABEL = "Sem {number}"
