"""
Routes de l'API de contrôle.
"""
