"""
RecipeHub Backend — Request/Response Schemas
==============================================

Pydantic models for the API contract. Recipe payloads use camelCase on the
wire (cookingTime, methodSteps, imageUrl, createdBy, ...).
"""
