"""Domain services shared by the RPC and REST surfaces.

Every function takes the request's `AsyncSession` as its first argument.
"""
