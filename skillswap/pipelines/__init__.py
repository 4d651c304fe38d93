"""Domain pipelines for matching, swap requests, chat, sessions, ratings and moderation.

Each pipeline takes an ``AsyncSession`` as its first argument and commits its
own unit of work, so every step is callable independently from the API or a
script.
"""
