# Schemas package init
"""
Pydantic request/response contracts. Wire keys are PascalCase
(`ProjectID`, `ClientName`, `GalleryID`, ...); Python attributes stay
snake_case and are populated by name inside the services.
"""
