"""
Test suite for the Serial Allocation Service.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_serial_allocation_service.py -v
"""
