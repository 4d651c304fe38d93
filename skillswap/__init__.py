"""SkillSwap backend package: models, pipelines and the HTTP API.

Users declare skills they teach and want to learn, get matched with
reciprocal partners, negotiate swap requests, chat, meet in scheduled
sessions and rate each other afterward.
"""
