"""AgroConnect marketplace API."""
