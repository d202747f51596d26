"""
RecipeHub Backend — Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Stateless service singletons that receive the request's AsyncSession
       on every call.

Service Inventory:
    - IdAllocator:    strictly increasing recipe IDs (counters table)
    - RecipeService:  recipe CRUD, compare-and-swap writes
    - CommentService: comments and the aggregate rating
    - AccessPolicy:   who may edit/delete what
    - AuthService:    registration and login
    - MediaService:   image validation, upload, release
        - LocalMediaBackend:      disk storage served at /media
        - CloudinaryMediaBackend: Cloudinary REST API (retries + circuit breaker)
"""
