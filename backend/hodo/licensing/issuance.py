"""
Append-only log of minted unlock codes.

One line per code: ``username,yyyyMMdd,employee_number``. The codes
themselves are not written.
"""

from pathlib import Path


def record_issuance(path: Path, username: str, day: str, emp_no: str) -> None:
    """Append an issuance line, creating the file and its directory if needed."""
    for field_name, value in (("username", username), ("date", day), ("emp_no", emp_no)):
        if not value or "," in value or "\n" in value:
            raise ValueError(f"Invalid {field_name} for issuance record")

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{username},{day},{emp_no}\n")
