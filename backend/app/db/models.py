from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text, Numeric, Index, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.database import Base
from app.db.enums import (
    UserRole, TaskVisibility, TaskStatus, TaskPriority, QuoteStatus, PaymentMethod,
)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def _enum_column(enum_cls, name):
    # Stored as VARCHAR holding the enum value so SQLite and PostgreSQL agree
    return SAEnum(enum_cls, name=name, native_enum=False, values_callable=_enum_values, length=32)


class Wedding(Base):
    __tablename__ = "weddings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    event_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="wedding")
    vendors = relationship("VendorProfile", back_populates="wedding")
    permission_policy = relationship("PermissionPolicy", back_populates="wedding", uselist=False)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_wedding_id", "wedding_id"),
        Index("ix_users_role", "role"),
    )
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(50), unique=True, nullable=True)
    display_name = Column(String(100))
    role = Column(_enum_column(UserRole, "userrole"), nullable=False)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    wedding = relationship("Wedding", back_populates="users")
    vendor_profile = relationship("VendorProfile", back_populates="user", uselist=False)


class VendorProfile(Base):
    __tablename__ = "vendor_profiles"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=False, index=True)
    # Login account for the vendor, if they have one
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    company_name = Column(String(200), nullable=False)
    contact_name = Column(String(200))
    vendor_type = Column(String(50))
    email = Column(String(255))
    phone = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    wedding = relationship("Wedding", back_populates="vendors")
    user = relationship("User", back_populates="vendor_profile")


class PermissionPolicy(Base):
    """Per-wedding capability overrides, merged over the defaults at read time."""
    __tablename__ = "permission_policies"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=False, unique=True)
    permissions = Column(Text, nullable=False, default="{}")  # JSON role -> {capability: bool}
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    wedding = relationship("Wedding", back_populates="permission_policy")


# ------------------ Tasks ------------------
class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_wedding_visibility", "wedding_id", "visibility"),
    )

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    status = Column(_enum_column(TaskStatus, "taskstatus"), nullable=False, default=TaskStatus.todo)
    priority = Column(_enum_column(TaskPriority, "taskpriority"), nullable=False, default=TaskPriority.medium)
    due_date = Column(DateTime(timezone=True), nullable=True)
    tags = Column(Text)  # JSON list
    visibility = Column(_enum_column(TaskVisibility, "taskvisibility"), nullable=False, default=TaskVisibility.internal_team)
    vendor_id = Column(Integer, ForeignKey("vendor_profiles.id"), nullable=True, index=True)
    assigned_to_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    vendor = relationship("VendorProfile")
    allowed_users = relationship("TaskAllowedUser", cascade="all, delete-orphan")
    blocked_users = relationship("TaskBlockedUser", cascade="all, delete-orphan")
    watchers = relationship("TaskWatcher", cascade="all, delete-orphan")
    comments = relationship("TaskComment", back_populates="task", cascade="all, delete-orphan", passive_deletes=True, order_by="TaskComment.id")
    activities = relationship("TaskActivity", back_populates="task", cascade="all, delete-orphan", passive_deletes=True)


class TaskAllowedUser(Base):
    __tablename__ = "task_allowed_users"
    __table_args__ = (UniqueConstraint("task_id", "user_id", name="uq_task_allowed_user"),)

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)


class TaskBlockedUser(Base):
    __tablename__ = "task_blocked_users"
    __table_args__ = (UniqueConstraint("task_id", "user_id", name="uq_task_blocked_user"),)

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)


class TaskWatcher(Base):
    __tablename__ = "task_watchers"
    __table_args__ = (UniqueConstraint("task_id", "user_id", name="uq_task_watcher"),)

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)


class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    author_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    task = relationship("Task", back_populates="comments")
    author = relationship("User")


class TaskActivity(Base):
    __tablename__ = "task_activities"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), nullable=False)  # created, updated, status_changed, assigned, commented
    details = Column(Text)  # JSON
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    task = relationship("Task", back_populates="activities")


# ------------------ Budget ------------------
class VendorQuote(Base):
    __tablename__ = "vendor_quotes"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendor_profiles.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    amount_total = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    notes = Column(Text)
    line_items = Column(Text)  # JSON list of {description, amount, quantity}
    status = Column(_enum_column(QuoteStatus, "quotestatus"), nullable=False, default=QuoteStatus.draft)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    vendor = relationship("VendorProfile")
    payments = relationship("Payment", back_populates="quote")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendor_profiles.id"), nullable=True, index=True)
    quote_id = Column(Integer, ForeignKey("vendor_quotes.id"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    paid_at = Column(DateTime(timezone=True), server_default=func.now())
    method = Column(_enum_column(PaymentMethod, "paymentmethod"), nullable=False, default=PaymentMethod.other)
    note = Column(String(1000))
    is_approved = Column(Boolean, default=False)
    approved_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    vendor = relationship("VendorProfile")
    quote = relationship("VendorQuote", back_populates="payments")
