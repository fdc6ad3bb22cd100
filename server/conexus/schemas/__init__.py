"""Pydantic schemas for request/response validation."""

from .accommodation import *  # noqa: F403
from .attendance import *  # noqa: F403
from .auth import *  # noqa: F403
from .common import *  # noqa: F403
from .dispatch import *  # noqa: F403
from .event import *  # noqa: F403
from .health import *  # noqa: F403
from .registration import *  # noqa: F403
