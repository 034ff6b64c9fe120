"""
Integration Tests Package

Editing sessions and the CLI against the in-memory development API.

TEST AXIOMS:
=============
1. Agreement: what the editor saves is what the server stores
2. One-way opacity: server-owned fields never travel back
3. Explicit failure: every refusal surfaces as a typed error
"""
