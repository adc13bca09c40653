# ===== agendando/schemas/public.py =====
import datetime as dt
from typing import List

from pydantic import Field

from agendando.schemas.base import CamelModel
from agendando.schemas.event_type import EventTypeOut


class HostProfileOut(CamelModel):
    username: str
    name: str
    timezone: str


class PublicProfileOut(CamelModel):
    host: HostProfileOut
    event_types: List[EventTypeOut]


class PublicEventOut(CamelModel):
    host: HostProfileOut
    event_type: EventTypeOut


class SlotOut(CamelModel):
    time: str
    datetime: dt.datetime


class WaitlistJoin(CamelModel):
    guest_name: str = Field(..., min_length=1, max_length=200)
    guest_email: str = Field(..., min_length=3, max_length=255)
