"""Database schema migrations."""

from __future__ import annotations

from .connection import SQLitePool


SCHEMA_SQL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS diaries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        diary_number INTEGER UNIQUE NOT NULL CHECK (diary_number > 0),
        ticket_start_range INTEGER NOT NULL,
        ticket_end_range INTEGER NOT NULL,
        total_tickets INTEGER NOT NULL,
        expected_amount NUMERIC NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CHECK (ticket_end_range >= ticket_start_range),
        CHECK (total_tickets = ticket_end_range - ticket_start_range + 1)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_diaries_range ON diaries(ticket_start_range, ticket_end_range);",
    """
    CREATE TABLE IF NOT EXISTS issuers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        issuer_name TEXT NOT NULL,
        contact_number TEXT NOT NULL,
        address TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_issuers_name ON issuers(issuer_name);",
    """
    CREATE TABLE IF NOT EXISTS diary_allotments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        diary_id INTEGER NOT NULL,
        issuer_id INTEGER NOT NULL,
        allotment_date DATE NOT NULL,
        status TEXT NOT NULL DEFAULT 'allotted'
            CHECK (status IN ('allotted', 'fully_sold', 'paid', 'returned')),
        amount_collected NUMERIC NOT NULL DEFAULT 0 CHECK (amount_collected >= 0),
        notes TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY(diary_id) REFERENCES diaries(id),
        FOREIGN KEY(issuer_id) REFERENCES issuers(id)
    );
    """,
    # At most one active allotment per diary, enforced atomically by the store
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_diary_allotments_active
        ON diary_allotments(diary_id) WHERE status = 'allotted';
    """,
    "CREATE INDEX IF NOT EXISTS idx_allotments_issuer ON diary_allotments(issuer_id);",
    "CREATE INDEX IF NOT EXISTS idx_allotments_status ON diary_allotments(status, allotment_date);",
    """
    CREATE TABLE IF NOT EXISTS ticket_sales (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        lottery_number INTEGER UNIQUE NOT NULL
            CHECK (lottery_number BETWEEN 1 AND 39999),
        purchaser_name TEXT NOT NULL,
        purchaser_contact TEXT NOT NULL,
        purchaser_address TEXT,
        issuer_id INTEGER NOT NULL,
        diary_id INTEGER NOT NULL,
        purchase_date DATE NOT NULL,
        amount_paid NUMERIC NOT NULL CHECK (amount_paid >= 0),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY(issuer_id) REFERENCES issuers(id),
        FOREIGN KEY(diary_id) REFERENCES diaries(id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_ticket_sales_issuer ON ticket_sales(issuer_id);",
    "CREATE INDEX IF NOT EXISTS idx_ticket_sales_diary ON ticket_sales(diary_id);",
    "CREATE INDEX IF NOT EXISTS idx_ticket_sales_purchase_date ON ticket_sales(purchase_date);",
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        entity_type TEXT NOT NULL,
        entity_id INTEGER NOT NULL,
        action TEXT NOT NULL CHECK (action IN ('INSERT', 'UPDATE', 'DELETE')),
        before_value TEXT,
        after_value TEXT,
        actor TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_audit_log_entity ON audit_log(entity_type, entity_id, id);",
    # Read-side joins returning composed records
    """
    CREATE VIEW IF NOT EXISTS ticket_sales_view AS
    SELECT
        t.id, t.lottery_number, t.purchaser_name, t.purchaser_contact,
        t.purchaser_address, t.issuer_id, t.diary_id, t.purchase_date,
        t.amount_paid, t.created_at, t.updated_at,
        d.diary_number, i.issuer_name
    FROM ticket_sales t
    JOIN diaries d ON d.id = t.diary_id
    JOIN issuers i ON i.id = t.issuer_id;
    """,
    """
    CREATE VIEW IF NOT EXISTS diary_allotments_view AS
    SELECT
        a.id, a.diary_id, a.issuer_id, a.allotment_date, a.status,
        a.amount_collected, a.notes, a.created_at, a.updated_at,
        d.diary_number, d.ticket_start_range, d.ticket_end_range,
        d.expected_amount, i.issuer_name, i.contact_number AS issuer_contact
    FROM diary_allotments a
    JOIN diaries d ON d.id = a.diary_id
    JOIN issuers i ON i.id = a.issuer_id;
    """,
)


async def run_migrations(pool: SQLitePool) -> None:
    async with pool.connection() as conn:
        await conn.execute("BEGIN")
        try:
            for statement in SCHEMA_SQL:
                await conn.execute(statement)
        except Exception:
            await conn.rollback()
            raise
        else:
            await conn.commit()
