"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .inventory import *  # noqa: F403
from .listing import *  # noqa: F403
