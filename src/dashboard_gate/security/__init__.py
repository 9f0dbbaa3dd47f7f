"""
Access control for the dashboard.

IPv4 allow-list matching, client address resolution, daily password
derivation, and the aiohttp gate middleware combining them.
"""
