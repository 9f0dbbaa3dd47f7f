"""
Daily password notification.

A once-a-day scheduler and the webhook client it drives.
"""
