"""
Turkish Shop e-mail package.

Modules:
- providers: HTTP clients for the transactional e-mail providers (SendGrid, Resend)
- dispatcher: NotificationDispatcher, the best-effort, never-raising sender
  with primary/secondary provider fallback

Templates live in services/communications_service/templates/ and are pure
functions returning subject/html/text; nothing in this package renders them.
"""
