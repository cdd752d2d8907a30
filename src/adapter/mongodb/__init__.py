"""MongoDB adapters for the user directory."""

USERS_COLLECTION_NAME = 'users'
AUTHORITIES_COLLECTION_NAME = 'authorities'
