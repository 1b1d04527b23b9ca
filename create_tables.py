"""
Simple script to create the threads and messages tables.
Run this once to set up the tables in your database.

Usage: python create_tables.py
"""

from sqlalchemy import inspect
from models import Base, Thread, Message  # Import models to register them
from database import engine

if __name__ == "__main__":
    print("Creating database tables...")
    
    # Create all tables
    Base.metadata.create_all(bind=engine)
    
    # Verify tables were created
    existing = set(inspect(engine).get_table_names())
    
    for table in (Thread.__tablename__, Message.__tablename__):
        if table in existing:
            print(f"✓ {table.capitalize()} table created successfully!")
        else:
            print(f"✗ Failed to create {table} table")
    
    engine.dispose()
