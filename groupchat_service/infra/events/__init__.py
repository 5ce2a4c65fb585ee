"""Event infrastructure for reliable event delivery.

- outbox: transactional outbox written with business changes and its publisher
- inbox: idempotency ledger of events already processed by the consumer
"""
