"""Shared field types."""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator

from utils.clock import ensure_utc

UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
OptionalUtcDatetime = Annotated[Optional[datetime], AfterValidator(ensure_utc)]
