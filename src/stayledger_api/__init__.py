"""FastAPI application exposing the booking core over REST."""
