# checkin_relay/utils/timestamps.py
from datetime import datetime, timezone
from typing import Optional

from dateutil import tz

CHECKIN_TIMEZONE = "America/Sao_Paulo"
# upstream parses the pt-BR rendering, not ISO-8601. Newer ICU puts a comma
# after the date in toLocaleString("pt-BR"); upstream takes the plain space form.
CHECKIN_TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"

_checkin_tz = tz.gettz(CHECKIN_TIMEZONE)


def current_local_timestamp(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(_checkin_tz).strftime(CHECKIN_TIMESTAMP_FORMAT)
