"""Exchange connectivity."""
