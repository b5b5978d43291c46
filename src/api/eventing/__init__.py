"""Eventing bounded context.

Transactional outbox, event relay, the ordered event log and the consumer
framework built on it.
"""
