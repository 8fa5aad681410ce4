"""
Customers module.

Scope:
- Customers create / detail / update, keyed by customer number (custno)
- List with search + pagination
- A successful create is announced on the caller's context (toast + notification log)
"""
