"""Pydantic schemas for the MAKAO API."""

from makao.schemas.base import *
from makao.schemas.user import *
from makao.schemas.property import *
from makao.schemas.lease import *
from makao.schemas.payment import *
from makao.schemas.maintenance import *
from makao.schemas.notification import *
from makao.schemas.calendar import *
from makao.schemas.webhook import *
from makao.schemas.dashboard import *
