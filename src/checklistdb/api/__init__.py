"""REST admin API for per-tenant maintenance."""
