"""Data models — enums and pydantic schemas shared by rules and services."""
