from decouple import config

# Fallback per-user limit when neither an override nor the event defines one.
TICKETS_PER_USER = config("TICKETS_PER_USER", default=10, cast=int)

# Capacity used for statistics that are not scoped to a single event.
MAX_TICKETS_GLOBAL = config("MAX_TICKETS_GLOBAL", default=200, cast=int)

# Admins can always download ticket PDFs, owners only when this is on.
ALLOW_USER_TICKET_DOWNLOAD = config("ALLOW_USER_TICKET_DOWNLOAD", default=False, cast=bool)

EVENT_ACCESS_TTL_SECONDS = config("EVENT_ACCESS_TTL_SECONDS", default=12 * 60 * 60, cast=int)

PAYMENT_CURRENCY = "EUR"
