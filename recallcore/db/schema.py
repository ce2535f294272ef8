"""
Defines the database schema for recallcore using a SQL string constant.
This keeps the schema definition separate from the database connection and
operation logic.

Timestamps are stored as naive UTC; db_utils re-attaches the timezone on read.
"""

DB_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS cards (
        uuid UUID PRIMARY KEY,
        item_id VARCHAR NOT NULL UNIQUE,
        due DATE NOT NULL,
        stability DOUBLE NOT NULL DEFAULT 0.0,
        difficulty DOUBLE NOT NULL DEFAULT 5.0,
        state VARCHAR NOT NULL DEFAULT 'new'
            CHECK (state IN ('new', 'learning', 'review', 'relearning')),
        reps INTEGER NOT NULL DEFAULT 0,
        lapses INTEGER NOT NULL DEFAULT 0,
        last_review TIMESTAMP,
        elapsed_days INTEGER NOT NULL DEFAULT 0,
        scheduled_days INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS parameters (
        id VARCHAR PRIMARY KEY,
        w_1 DOUBLE NOT NULL,
        w_2 DOUBLE NOT NULL,
        w_3 DOUBLE NOT NULL,
        w_4 DOUBLE NOT NULL,
        w_5 DOUBLE NOT NULL,
        w_6 DOUBLE NOT NULL,
        w_7 DOUBLE NOT NULL,
        w_8 DOUBLE NOT NULL,
        w_9 DOUBLE NOT NULL,
        w_10 DOUBLE NOT NULL,
        w_11 DOUBLE NOT NULL,
        w_12 DOUBLE NOT NULL,
        w_13 DOUBLE NOT NULL,
        w_14 DOUBLE NOT NULL,
        w_15 DOUBLE NOT NULL,
        w_16 DOUBLE NOT NULL,
        w_17 DOUBLE NOT NULL,
        w_18 DOUBLE NOT NULL,
        w_19 DOUBLE NOT NULL,
        desired_retention DOUBLE NOT NULL,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    );
"""
