"""Election persistence: storage protocol, SQLite and in-memory backends"""
