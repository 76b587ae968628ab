"""
EventHub Backend — API Routes Package
======================================

Route Inventory:
    - resources.py: router factory; one router per collection in
                    eventhub.resources (events, recent, services, pricing,
                    reviews, featured)
    - health.py:    GET /        (server status)
                    GET /health  (database health check)

Routes stay thin: extract request data, call ResourceService, wrap the
result in a response envelope.
"""
