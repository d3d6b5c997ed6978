"""Create all database tables from ORM models."""

from core.config import load_config
from db.session import Database

if __name__ == "__main__":
    database = Database.from_config(load_config())
    database.open()
    try:
        database.create_schema()
    finally:
        database.close()
    print("DB schema created")
