"""
Who's the Undercover - multiplayer social deduction word game server.
"""
