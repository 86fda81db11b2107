"""
API request/response schemas
"""
