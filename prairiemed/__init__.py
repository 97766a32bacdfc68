"""PrairieMed authentication and access control service."""
