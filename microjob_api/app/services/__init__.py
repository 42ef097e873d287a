"""
Service layer abstraction.

Each service encapsulates business logic for a domain.  Service
methods receive the database connection from the caller (normally the
``get_db`` dependency of the current request) instead of opening one
themselves.
"""
