from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
)

metadata = MetaData()

reservations = Table(
    "reservations",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("reservation_code", String(6), nullable=False, unique=True),
    Column("booking_reference", String(8), nullable=False, unique=True),
    Column("owner_id", String(64), nullable=False, index=True),
    Column("status", String(16), nullable=False, index=True),
    Column("currency_code", String(3), nullable=False),
    Column("base_total", Numeric(12, 2), nullable=False),
    Column("taxes_total", Numeric(12, 2), nullable=False),
    Column("fees_total", Numeric(12, 2), nullable=False),
    Column("discount_total", Numeric(12, 2), nullable=False),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("passenger_count", Integer, nullable=False),
    # Denormalized for search: "|SMITH|DOE|" and "|AA100|BA200|"
    Column("contact_email", String(255), nullable=False),
    Column("passenger_last_names", String(1000), nullable=False),
    Column("flight_numbers", String(500), nullable=False),
    Column("first_departure_at", DateTime(timezone=True), nullable=False),
    Column("last_arrival_at", DateTime(timezone=True), nullable=False),
    Column("hold_expires_at", DateTime(timezone=True), nullable=False),
    Column("itineraries", JSON, nullable=False),
    Column("passengers", JSON, nullable=False),
    Column("contact", JSON, nullable=False),
    Column("pricing", JSON, nullable=False),
    Column("provider_offers", JSON, nullable=False),
    Column("remote_order_id", String(64)),
    Column("last_synced_at", DateTime(timezone=True)),
    Column("confirmation_pending", Boolean, nullable=False, default=True),
    Column("remote_cancel_pending", Boolean, nullable=False, default=False),
    Column("last_provider_error", String(255)),
    Column("cancellation_reason", String(500)),
    Column("lock_version", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

Index("ix_reservations_status_hold", reservations.c.status, reservations.c.hold_expires_at)
Index("ix_reservations_contact_email", reservations.c.contact_email)

reservation_status_history = Table(
    "reservation_status_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reservation_id", String(32), nullable=False, index=True),
    Column("seq", Integer, nullable=False),
    Column("status", String(16), nullable=False),
    Column("changed_at", DateTime(timezone=True), nullable=False),
    Column("reason", String(500)),
    UniqueConstraint("reservation_id", "seq", name="uq_status_history_seq"),
)

reservation_change_log = Table(
    "reservation_change_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reservation_id", String(32), nullable=False, index=True),
    Column("seq", Integer, nullable=False),
    Column("field", String(255), nullable=False),
    Column("old_value", JSON),
    Column("new_value", JSON),
    Column("changed_at", DateTime(timezone=True), nullable=False),
    Column("changed_by", String(64)),
    UniqueConstraint("reservation_id", "seq", name="uq_change_log_seq"),
)

rate_limit_counters = Table(
    "rate_limit_counters",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("count", Integer, nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False),
)
