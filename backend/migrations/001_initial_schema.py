"""
Initial database schema migration.

Creates accounts, verification records, assessment sessions and the question banks.
"""

from sqlalchemy import text


TABLES = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id VARCHAR PRIMARY KEY,
        email VARCHAR UNIQUE NOT NULL,
        password_hash VARCHAR,
        name VARCHAR NOT NULL,
        google_id VARCHAR UNIQUE,
        email_verified BOOLEAN DEFAULT FALSE NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        last_login_at TIMESTAMP WITH TIME ZONE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
        id VARCHAR PRIMARY KEY,
        token_hash VARCHAR UNIQUE NOT NULL,
        user_id VARCHAR NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        expires_at TIMESTAMP WITH TIME ZONE NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_data (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        purchased_products JSON NOT NULL,
        interview_progress JSON NOT NULL,
        id_verification_status VARCHAR NOT NULL DEFAULT 'not-started',
        reference_check_status VARCHAR NOT NULL DEFAULT 'not-started',
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_references (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name VARCHAR NOT NULL,
        email VARCHAR NOT NULL,
        phone VARCHAR,
        company VARCHAR NOT NULL,
        position VARCHAR,
        relationship VARCHAR NOT NULL,
        status VARCHAR NOT NULL DEFAULT 'draft',
        submitted_at TIMESTAMP WITH TIME ZONE,
        response_received_at TIMESTAMP WITH TIME ZONE,
        verified_at TIMESTAMP WITH TIME ZONE,
        response_data JSON,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS certificates (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        product_id VARCHAR NOT NULL,
        certificate_number VARCHAR UNIQUE NOT NULL,
        issue_date TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP NOT NULL,
        status VARCHAR NOT NULL DEFAULT 'active',
        skills_data JSON,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        product_id VARCHAR NOT NULL,
        amount INTEGER NOT NULL,
        currency VARCHAR NOT NULL DEFAULT 'usd',
        status VARCHAR NOT NULL,
        payment_intent_id VARCHAR UNIQUE NOT NULL,
        payment_method_id VARCHAR,
        granted_products JSON,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS id_verifications (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        id_document_url VARCHAR,
        id_document_type VARCHAR,
        visa_document_url VARCHAR,
        visa_document_type VARCHAR,
        selfie_url VARCHAR,
        status VARCHAR NOT NULL DEFAULT 'in-progress',
        submitted_at TIMESTAMP WITH TIME ZONE,
        reviewed_at TIMESTAMP WITH TIME ZONE,
        review_notes TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id VARCHAR PRIMARY KEY,
        session_id VARCHAR UNIQUE NOT NULL,
        user_id VARCHAR REFERENCES users(id) ON DELETE CASCADE,
        owner_id VARCHAR NOT NULL,
        status VARCHAR NOT NULL DEFAULT 'active',
        data JSON NOT NULL,
        last_activity TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
        expiry_reason VARCHAR,
        expired_at TIMESTAMP WITH TIME ZONE,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS mcq_questions (
        id VARCHAR PRIMARY KEY,
        skill VARCHAR NOT NULL,
        question TEXT NOT NULL,
        options JSON NOT NULL,
        correct_option_index INTEGER NOT NULL,
        difficulty VARCHAR NOT NULL DEFAULT 'medium',
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS coding_challenges (
        id VARCHAR PRIMARY KEY,
        skill VARCHAR NOT NULL,
        title VARCHAR NOT NULL,
        description TEXT NOT NULL,
        language VARCHAR NOT NULL DEFAULT 'javascript',
        starter_code TEXT,
        test_cases JSON,
        difficulty VARCHAR NOT NULL DEFAULT 'medium',
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS proctoring_events (
        id VARCHAR PRIMARY KEY,
        session_id VARCHAR NOT NULL,
        user_id VARCHAR REFERENCES users(id) ON DELETE SET NULL,
        event_type VARCHAR NOT NULL,
        similarity DOUBLE PRECISION,
        alert_triggered BOOLEAN DEFAULT FALSE NOT NULL,
        violations JSON,
        timestamp TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)",
    "CREATE INDEX IF NOT EXISTS idx_refresh_tokens_user_id ON refresh_tokens(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_user_references_user_id ON user_references(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_certificates_user_id ON certificates(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_payments_user_id ON payments(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_owner_id ON sessions(owner_id)",
    # Cleanup scans by status and last activity
    "CREATE INDEX IF NOT EXISTS idx_sessions_status_activity ON sessions(status, last_activity)",
    "CREATE INDEX IF NOT EXISTS idx_mcq_questions_skill ON mcq_questions(skill, difficulty)",
    "CREATE INDEX IF NOT EXISTS idx_coding_challenges_skill ON coding_challenges(skill)",
    "CREATE INDEX IF NOT EXISTS idx_proctoring_events_session_id ON proctoring_events(session_id)",
]


def upgrade(engine):
    """
    Apply migration: Create initial schema.

    Args:
        engine: SQLAlchemy engine instance
    """
    with engine.connect() as conn:
        for statement in TABLES + INDEXES:
            conn.execute(text(statement))
        conn.commit()


def downgrade(engine):
    """
    Rollback migration: Drop initial schema.

    Args:
        engine: SQLAlchemy engine instance
    """
    with engine.connect() as conn:
        # Reverse creation order so foreign keys are dropped first
        for table in [
            "proctoring_events", "coding_challenges", "mcq_questions", "sessions",
            "id_verifications", "payments", "certificates", "user_references",
            "user_data", "refresh_tokens", "users",
        ]:
            conn.execute(text(f"DROP TABLE IF EXISTS {table}"))
        conn.commit()
