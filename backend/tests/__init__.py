"""
Pytest suite for the Gallery NFT backend.

Test categories:
- Unit tests: pure helpers (matcher, validators, description composition)
- Integration tests: services against in-memory / file-backed SQLite
- API tests: FastAPI routes over ASGITransport with the minting service stubbed
"""
