"""
Quotes module.

- Public quote requests (POST /api/quote), linked to a user by session or email
- Admin triage under /api/admin/quotes; status changes notify the requester
  in their own locale
"""
