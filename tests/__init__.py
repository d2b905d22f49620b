"""
Progress Tracking Test Suite
============================

Test Organization
-----------------
- tests/unit/          : Fast unit tests against in-memory fakes (no external dependencies)
- tests/integration/   : Integration tests with testcontainers (PostgreSQL, Redis)

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test business logic
- Integration tests: Slower, test real infrastructure interactions
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
