"""FastAPI apps for the racing and sports services and the API gateway."""
