"""
Articles module (news posts shown on the public site).

- Admin CRUD under /api/admin/articles, gated by the `articles` module
  (ADMIN, or STAFF with the article override)
- Only PUBLISHED articles are visible through the public API and /news
"""
