"""
Commonweal — A Community Initiatives & Events Backend
=======================================================
Members start initiatives and organise events; neighbours join, attend,
comment, rate, donate, message each other and get notified.  Impact and
engagement metrics are derived from that activity automatically.

Package layout::

    commonweal/
    ├── config.py          # YAML → typed Python config, logging setup
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helpers
    │   └── models.py      # All ORM models + derived-metric flush hook
    ├── engine/
    │   └── metrics.py     # Impact / social-impact / rating formulas
    ├── services/
    │   ├── user_service.py          # Accounts, passwords, reset tokens
    │   ├── initiative_service.py    # Initiative lifecycle
    │   ├── event_service.py         # Events + capacity-limited attendance
    │   ├── donation_service.py      # Pledges, manual settlement, stats
    │   ├── message_service.py       # Direct messages
    │   ├── notification_service.py  # Fan-out + inbox
    │   ├── retention_service.py     # Expired-notification purge
    │   ├── pagination.py            # Offset pagination + filters
    │   └── errors.py                # Domain exceptions
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Register / login → JWT
        └── routes/        # One router per resource
"""

__version__ = "0.1.0"
