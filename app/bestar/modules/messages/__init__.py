"""
Messages module: contact-form inbox and in-site user notifications.
"""
