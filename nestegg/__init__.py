"""Month-by-month household retirement projection."""
