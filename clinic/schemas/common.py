# clinic/schemas/common.py
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from clinic.utils.datetime_utils import as_utc

# SQLite returns naive datetimes; records always carry tz-aware UTC values
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]
