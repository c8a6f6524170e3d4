"""
ShiftCoach - moteur de scoring circadien pour travailleurs postés
"""
__version__ = "1.0.0"
