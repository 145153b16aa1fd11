"""Key-value access to the clinic_settings table."""

from datetime import datetime

from .connection import get_connection


class SettingsRepository:
    """Repository for clinic configuration rows."""

    def get(self, name: str) -> str | None:
        """Get a setting value by name."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT setting_value FROM clinic_settings WHERE setting_name = ?", (name,)
            ).fetchone()
        finally:
            conn.close()
        return row["setting_value"] if row else None

    def set(self, name: str, value: str, description: str | None = None) -> None:
        """Insert or replace a setting. Keeps the old description when none is given."""
        now = datetime.now().isoformat(sep=" ", timespec="seconds")
        conn = get_connection()
        try:
            conn.execute(
                """INSERT INTO clinic_settings (setting_name, setting_value, description, last_updated)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(setting_name) DO UPDATE SET
                       setting_value = excluded.setting_value,
                       description = COALESCE(excluded.description, clinic_settings.description),
                       last_updated = excluded.last_updated""",
                (name, str(value), description, now),
            )
            conn.commit()
        finally:
            conn.close()

    def all(self) -> dict[str, str]:
        """Get every setting as a name -> value dict."""
        conn = get_connection()
        try:
            rows = conn.execute("SELECT setting_name, setting_value FROM clinic_settings").fetchall()
        finally:
            conn.close()
        return {row["setting_name"]: row["setting_value"] for row in rows}
