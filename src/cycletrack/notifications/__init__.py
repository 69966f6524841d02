"""
Reminder scheduling, delivery and the periodic sweep.
"""
