"""Domain modules package."""

from booking_engine.modules.calendar import models as calendar_models  # noqa: F401
from booking_engine.modules.catalog import models as catalog_models  # noqa: F401
from booking_engine.modules.orders import models as orders_models  # noqa: F401
