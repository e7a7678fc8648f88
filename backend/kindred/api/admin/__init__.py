"""
Admin API routers (ADMIN role only).
"""
