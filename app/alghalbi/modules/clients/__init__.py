"""
Clients module (the firm's represented parties / contacts).

Scope:
- List the signed-in lawyer's own clients, newest first
- Create a client (full name required; email, phone, notes optional)
"""
