# Every table is imported here so SQLModel.metadata is complete for create_all.
from .base import TenantScopedMixin, TimestampMixin, UUIDMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User  # noqa: F401
from .membership import Membership  # noqa: F401
from .fraction import Fraction, UserFraction  # noqa: F401
from .ticket import Ticket, TicketComment, TicketEvent  # noqa: F401
from .supplier import MaintenanceRecord, Supplier  # noqa: F401
from .document import Document  # noqa: F401
from .invite import Invite  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
from .notification import Notification  # noqa: F401
