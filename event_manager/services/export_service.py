"""
Spreadsheet exports for participant rosters and activity logs
"""

import io
from typing import Iterable, List

import pandas as pd

from event_manager.models import Event, EventLog

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PARTICIPANT_COLUMNS = ["Name", "Email", "First Name", "Last Name"]
LOG_COLUMNS = ["Date", "Event Type", "User ID", "IP Address", "User Agent", "Details"]


class ExportService:
    """Service for building Excel workbooks"""

    @staticmethod
    def _to_excel(rows: List[dict], columns: List[str], sheet_name: str) -> bytes:
        df = pd.DataFrame(rows, columns=columns)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name=sheet_name)

        return buffer.getvalue()

    @staticmethod
    def export_participants(event: Event) -> bytes:
        """Participant roster of one event"""
        rows = [
            {
                "Name": user.full_name,
                "Email": user.email,
                "First Name": user.first_name or "",
                "Last Name": user.last_name or "",
            }
            for user in event.participants
        ]
        return ExportService._to_excel(rows, PARTICIPANT_COLUMNS, "Participants")

    @staticmethod
    def export_logs(logs: Iterable[EventLog]) -> bytes:
        rows = []
        for log in logs:
            details = ", ".join(f"{key}={value}" for key, value in (log.payload or {}).items())
            rows.append({
                "Date": log.created_at,
                "Event Type": log.event_type,
                "User ID": log.user_id,
                "IP Address": log.ip_address or "",
                "User Agent": log.user_agent or "",
                "Details": details,
            })
        return ExportService._to_excel(rows, LOG_COLUMNS, "Activity Log")

