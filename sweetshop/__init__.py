"""
Sweet Shop inventory service.

A FastAPI service exposing user registration/login and role-gated inventory
management for sweets, including atomic purchase and restock operations.
"""
