"""Business logic services.

Services contain the publishing logic separate from route handlers.
"""
