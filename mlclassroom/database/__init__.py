from mlclassroom.database.database import create_db_engine, create_session, get_db, init_db

__all__ = ["create_db_engine", "create_session", "get_db", "init_db"]
