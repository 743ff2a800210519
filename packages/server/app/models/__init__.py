# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import TimestampMixin  # noqa: F401
from .channel_info import ChannelInfo  # noqa: F401
from .subscription import Subscription  # noqa: F401
