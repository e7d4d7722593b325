"""Pydantic schema models for API responses.

- **errors**: Standard error body for application and HTTP exceptions
- **problem_details**: RFC 7807 bodies for request validation failures
"""
