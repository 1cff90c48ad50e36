"""Conversation feature package: session entities, store, assembler and routes.

Sessions and their messages live in the relational database through the
SQLAlchemy async ORM. The store is the only writer; the chat relay appends
turns through it.
"""
