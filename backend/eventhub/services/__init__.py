"""
EventHub Backend — Services Layer
==================================

Service Inventory:
    - ResourceService: list / create / upsert-update / soft-delete for one
      collection, with lifecycle stamping (createdAt, updatedAt, deletedAt)

Services take the request's AsyncSession as an argument and hold no
per-request state, so one instance per collection serves every request.
"""
