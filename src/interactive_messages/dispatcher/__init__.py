"""Callback dispatch — constraint matching, registry, response arbitration.

Learn: the dispatcher is the stateful core of the package. Everything
around it (HTTP transport, signature checks, the server) only decodes a
payload and calls MessageAdapter.dispatch().

Per request:
1. The registry finds the first registration whose constraint matches
2. A fresh ResponseArbitrator invokes the handler
3. The arbitrator settles the synchronous answer within the budget and
   hands any later deliveries to the WebhookNotifier
"""
