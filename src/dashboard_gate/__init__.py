"""
Dashboard Gate - IP allow-list and daily rotating Basic auth for a dashboard.

This package serves a static dashboard behind two checks: the client's
IPv4 address must be inside a configured CIDR allow-list, and the request
must carry Basic credentials whose password rotates every calendar day in
a fixed time zone. A background scheduler posts the current password to a
webhook once a day so the operator can fetch it.

Example:
    ```python
    from dashboard_gate.main import main

    if __name__ == "__main__":
        main()
    ```
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
