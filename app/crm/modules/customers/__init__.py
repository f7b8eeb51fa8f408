"""
Customers module.

Scope:
- Registration (issues a bearer token in the Authorization response header)
- Lookup by id / email, list
- Partial update (sparse patch merge, email uniqueness)
- Delete
- Profile image upload/download against the customer bucket
"""
