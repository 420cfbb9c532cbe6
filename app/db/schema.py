from __future__ import annotations

_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS schools (
        id uuid PRIMARY KEY,
        name text NOT NULL UNIQUE,
        address text,
        created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS rooms (
        id uuid PRIMARY KEY,
        school_id uuid NOT NULL REFERENCES schools(id) ON DELETE CASCADE,
        name text NOT NULL,
        created_at timestamptz NOT NULL DEFAULT now(),
        UNIQUE (school_id, name)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id uuid PRIMARY KEY,
        name text,
        email text UNIQUE,
        role text NOT NULL DEFAULT 'STUDENT' CHECK (role IN ('ADMIN', 'STUDENT')),
        school_id uuid REFERENCES schools(id) ON DELETE SET NULL,
        room_id uuid REFERENCES rooms(id) ON DELETE SET NULL,
        created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS users_room_role_idx ON users (room_id, role, created_at);",
    """
    CREATE TABLE IF NOT EXISTS raffles (
        id uuid PRIMARY KEY,
        title text NOT NULL,
        description text,
        prize text NOT NULL,
        ticket_price numeric(12,2) NOT NULL CHECK (ticket_price > 0),
        total_tickets int NOT NULL CHECK (total_tickets > 0),
        draw_date timestamptz,
        organizer_id uuid NOT NULL REFERENCES users(id),
        room_id uuid REFERENCES rooms(id) ON DELETE SET NULL,
        status text NOT NULL DEFAULT 'ACTIVE'
            CHECK (status IN ('DRAFT', 'ACTIVE', 'CLOSED', 'CANCELLED')),
        created_at timestamptz NOT NULL DEFAULT now(),
        updated_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS invoices (
        id uuid PRIMARY KEY,
        user_id uuid REFERENCES users(id),
        total_amount numeric(12,2) NOT NULL CHECK (total_amount >= 0),
        payment_method text NOT NULL,
        reference text,
        proof_url text,
        amount_bss numeric(14,2),
        amount_usd numeric(12,2),
        bcv_rate numeric(14,4),
        status text NOT NULL DEFAULT 'PENDING'
            CHECK (status IN ('PENDING', 'COMPLETED', 'FAILED')),
        created_at timestamptz NOT NULL DEFAULT now(),
        updated_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS invoices_user_id_idx ON invoices (user_id);",
    """
    CREATE TABLE IF NOT EXISTS tickets (
        id uuid PRIMARY KEY,
        raffle_id uuid NOT NULL REFERENCES raffles(id) ON DELETE CASCADE,
        number int NOT NULL CHECK (number > 0),
        owner_id uuid REFERENCES users(id) ON DELETE SET NULL,
        owner_name text,
        owner_phone text,
        status text NOT NULL DEFAULT 'PENDING'
            CHECK (status IN ('PENDING', 'ASSIGNED', 'PAID')),
        invoice_id uuid REFERENCES invoices(id) ON DELETE SET NULL,
        created_at timestamptz NOT NULL DEFAULT now(),
        updated_at timestamptz NOT NULL DEFAULT now(),
        UNIQUE (raffle_id, number),
        CHECK ((status = 'PAID') = (invoice_id IS NOT NULL))
    );
    """,
    "CREATE INDEX IF NOT EXISTS tickets_owner_id_idx ON tickets (owner_id);",
    "CREATE INDEX IF NOT EXISTS tickets_invoice_id_idx ON tickets (invoice_id);",
    """
    CREATE TABLE IF NOT EXISTS invoice_tickets (
        invoice_id uuid NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
        ticket_id uuid NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
        PRIMARY KEY (invoice_id, ticket_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS invoice_tickets_ticket_id_idx ON invoice_tickets (ticket_id);",
)


def ensure_schema(conn) -> None:
    cur = conn.cursor()
    for statement in _STATEMENTS:
        cur.execute(statement)
    conn.commit()
    cur.close()
