# Services package init
"""
Bug Tracker Backend: Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services receive their session and collaborators at construction and
       are built per request through FastAPI dependencies.

Service Inventory:
    - LLMService (abstract): chat-completion provider interface
    - OpenRouterService / GeminiService: concrete providers
    - CircuitBreaker: pauses provider calls after repeated failures
    - TagGenerator: prompt + parsing + fallback tags, never raises
    - BugQueryService: listing, lookup, tags, users, statistics
    - BugMutationService: create, update, delete, tag regeneration
"""
