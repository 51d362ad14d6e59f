# Services package init
"""
Project Gallery Backend — Services Layer
==========================================

What:  Business logic between routes (HTTP) and the record store.
How:   Services receive the request's AsyncSession on every call and the
       storage backend at construction; they hold no per-request state.

Service Inventory:
    - BlobStorage (abstract): FilesystemStorage / InlineStorage
    - UploadReceiver: multipart payload limits and buffering
    - GalleryService: create / list / delete / replace with content cleanup
    - ProjectService: project CRUD and cascade delete
    - AuthService: argon2 password hashing and login
"""
