from sqlmodel import SQLModel
from fastapi.logger import logger
from src.api.common.utils.database import engine

# Import all models to register them with SQLModel
from src.api.invoices.models.invoice import Invoice  # noqa: F401


def init_db(bind=None):
    """Initialize the database by creating all tables"""
    logger.info("Creating database tables...")
    SQLModel.metadata.create_all(bind or engine)
    logger.info("Database tables created successfully.")


if __name__ == "__main__":
    init_db()
