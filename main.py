# main.py

"""
Entry point for app-firewall-sync.

Run:
    python main.py [--dry-run] [--remove] [--config PATH]

Note:
    Changing firewall rules needs an elevated prompt or a service running
    as LocalSystem. The exit code is non-zero when any rule failed.
"""

from app_firewall.cli import run

if __name__ == "__main__":
    run()
