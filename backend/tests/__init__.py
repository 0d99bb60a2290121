"""
Pytest suite for the School Canteen backend.

Test categories:
- Unit tests: payment orchestration and gateway client with mocked transport
- Integration tests: services against an in-memory SQLite order store
- API tests: full FastAPI app through httpx's ASGI transport
"""
