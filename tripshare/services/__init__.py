# Services package init
"""
TripShare Backend — Services Layer
====================================

Service Inventory:
    - MembershipStore: like rows; conditional create and remove
    - ContentItemStore: post lookups and the relative likes-counter update
    - ToggleCoordinator: the like toggle; the only writer of both at once
    - PostService: create, list, and fetch community posts

The stores never commit. The coordinator decides transaction boundaries,
and PostService runs on the request-scoped session.
"""
