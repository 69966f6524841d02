"""
Database configuration module.
Handles database connection settings and the default session factory.
"""

import os
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

# Load environment variables
load_dotenv()

# Database configuration from environment variables
DB_HOST = os.getenv('DB_HOST', 'localhost')
DB_PORT = os.getenv('DB_PORT', '5432')
DB_NAME = os.getenv('DB_NAME', 'cycletrack_dev')
DB_USER = os.getenv('DB_USER', 'postgres')
DB_PASSWORD = os.getenv('DB_PASSWORD', '')

# Full URL wins over the individual parts
DATABASE_URL = os.getenv(
    'DATABASE_URL',
    f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# Create engine
# NullPool: the sweep runs every few minutes, idle connections are not worth keeping
engine = create_engine(
    DATABASE_URL,
    poolclass=NullPool,
    echo=False,  # Set to True for SQL query logging during development
)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db(bind=None):
    """
    Create all tables.
    This is mainly for development and tests.
    In production, use Alembic migrations.
    """
    from cycletrack.models import Base

    Base.metadata.create_all(bind=bind or engine)
