"""
Initialize the database and create all tables.
"""
from dotenv import load_dotenv

load_dotenv()

from db.database import init_database, configure_database, DATABASE_URL

if __name__ == '__main__':
    print("Creating database tables...")
    configure_database()
    init_database()
    print(f"Database initialized successfully at: {DATABASE_URL}")
