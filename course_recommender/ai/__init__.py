"""Optional text-generation providers used to enrich recommendations."""
