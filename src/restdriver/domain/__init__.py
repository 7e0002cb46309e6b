"""Domain layer — types, query value objects, and errors.

This layer depends only on stdlib and pydantic.
It must never import from codec, driver, services, commands, or config.
"""
