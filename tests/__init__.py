"""Tuxedo Touch Integration Test Suite

Test Modules:
- test_crypto: cipher, signing and shared secret handling
- test_security: panel status string mapping
- test_api: encrypted API request layout, error mapping and typed operations
- test_session: portal login state machine, cookie persistence and keep-alive
- test_scraper: device list parsing and portal commands
- test_entities: alarm panel, garage door and light entities
- test_config_flow: config form validation
- test_simulator: interop against the FastAPI panel simulator
- test_translations: translation file consistency

Running Tests:
    pytest tests/                          # Run all tests
    pytest tests/test_session.py           # Run specific module
"""

__version__ = "1.0.0"
