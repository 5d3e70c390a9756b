# app/client/thread.py
"""
Local state for one ticket's comment thread.

Rows are the JSON objects returned by ``GET /tickets/{id}/comments?tree=false``.
Writes are applied optimistically: a placeholder with a ``temp-`` id is shown
immediately, then either replaced by the server-confirmed row or removed.
A fresh fetch replaces every confirmed row ("last fetch wins") while keeping
placeholders whose request is still in flight.
"""
import copy
import uuid
from datetime import datetime, timezone
from typing import Any

TEMP_PREFIX = "temp-"

Row = dict[str, Any]


def is_temp_id(comment_id: Any) -> bool:
    return isinstance(comment_id, str) and comment_id.startswith(TEMP_PREFIX)


class CommentThread:
    def __init__(self, ticket_id: int, rows: list[Row] | None = None, viewer_id: int | None = None):
        self.ticket_id = ticket_id
        # the viewer's own reactions arrive through the POST response, not the feed
        self.viewer_id = viewer_id
        self._rows: list[Row] = []
        if rows:
            self.merge(rows)

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> list[Row]:
        return list(self._rows)

    @property
    def pending(self) -> list[Row]:
        return [r for r in self._rows if r.get("pending")]

    def get(self, comment_id: Any) -> Row | None:
        for row in self._rows:
            if row["id"] == comment_id:
                return row
        return None

    def add_optimistic(
        self,
        content: str,
        author: Row | None = None,
        parent_id: int | None = None,
        image_url: str | None = None,
    ) -> Row:
        row = {
            "id": f"{TEMP_PREFIX}{uuid.uuid4()}",
            "ticket_id": self.ticket_id,
            "user_id": author.get("user_id") if author else None,
            "parent_id": parent_id,
            "content": content.strip(),
            "image_url": image_url,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "profile": author,
            "reactions": [],
            "read_by": 0,
            "mentions": [],
            "pending": True,
        }
        self._rows.append(row)
        return row

    def confirm(self, temp_id: str, server_row: Row) -> Row:
        """Swap a placeholder for the stored row, keeping its position."""
        confirmed = dict(server_row, pending=False)
        confirmed.pop("replies", None)
        for index, row in enumerate(self._rows):
            if row["id"] == temp_id:
                self._rows[index] = confirmed
                break
        else:
            # realtime push may have delivered the row before the POST returned
            if self.get(confirmed["id"]) is None:
                self._rows.append(confirmed)
            return confirmed
        # drop a duplicate that arrived through a refetch
        self._rows = [r for i, r in enumerate(self._rows) if r["id"] != confirmed["id"] or r is confirmed]
        return confirmed

    def rollback(self, temp_id: str) -> bool:
        before = len(self._rows)
        self._rows = [r for r in self._rows if r["id"] != temp_id]
        return len(self._rows) != before

    def remove(self, comment_id: Any) -> list[Row]:
        """Drop a comment and its replies. Returns what was removed so it can be restored."""
        doomed = {comment_id}
        changed = True
        while changed:
            changed = False
            for row in self._rows:
                if row.get("parent_id") in doomed and row["id"] not in doomed:
                    doomed.add(row["id"])
                    changed = True
        removed = [r for r in self._rows if r["id"] in doomed]
        self._rows = [r for r in self._rows if r["id"] not in doomed]
        return removed

    def restore(self, removed: list[Row]) -> None:
        self.merge([r for r in self._rows if not r.get("pending")] + removed)

    def merge(self, server_rows: list[Row]) -> None:
        confirmed = []
        for row in sorted(server_rows, key=lambda r: (r.get("created_at") or "", r["id"])):
            clean = dict(row, pending=False)
            clean.pop("replies", None)
            confirmed.append(clean)
        self._rows = confirmed + [r for r in self._rows if r.get("pending")]

    def apply_change(self, change: Row) -> None:
        """Apply an event from the ticket's ``comments:<id>`` channel. Unknown tables are ignored."""
        table = change.get("table")
        event = change.get("event")
        record = change.get("record") or {}
        if table == "comments":
            comment_id = record.get("id")
            if comment_id is None:
                return
            if event == "DELETE":
                self.remove(comment_id)
            elif self.get(comment_id) is None:
                self.merge([r for r in self._rows if not r.get("pending")] + [record])
        elif table == "comment_reactions":
            if record.get("user_id") == self.viewer_id:
                return
            self._count_reaction(record.get("comment_id"), record.get("emoji"), 1 if event == "INSERT" else -1)
        elif table == "comment_read_receipts":
            for comment_id in record.get("comment_ids") or []:
                row = self.get(comment_id)
                if row is not None:
                    row["read_by"] = row.get("read_by", 0) + 1

    def _count_reaction(self, comment_id: Any, emoji: str | None, delta: int) -> None:
        row = self.get(comment_id)
        if row is None or not emoji:
            return
        reactions = row.setdefault("reactions", [])
        for entry in reactions:
            if entry["emoji"] == emoji:
                entry["count"] += delta
                if entry["count"] <= 0:
                    reactions.remove(entry)
                return
        if delta > 0:
            reactions.append({"emoji": emoji, "count": delta, "reacted": False})

    def tally(self, comment_id: Any) -> list[Row]:
        row = self.get(comment_id)
        return copy.deepcopy(row["reactions"]) if row else []

    def toggle_reaction_optimistic(self, comment_id: Any, emoji: str) -> list[Row]:
        """Flip the viewer's reaction locally. Returns the previous tally for ``revert_reaction``."""
        row = self.get(comment_id)
        if row is None:
            raise KeyError(comment_id)
        previous = copy.deepcopy(row["reactions"])
        reactions = row["reactions"]
        for entry in reactions:
            if entry["emoji"] != emoji:
                continue
            if entry.get("reacted"):
                entry["count"] -= 1
                entry["reacted"] = False
                if entry["count"] <= 0:
                    reactions.remove(entry)
            else:
                entry["count"] += 1
                entry["reacted"] = True
            break
        else:
            reactions.append({"emoji": emoji, "count": 1, "reacted": True})
        return previous

    def set_reactions(self, comment_id: Any, reactions: list[Row]) -> None:
        row = self.get(comment_id)
        if row is not None:
            row["reactions"] = copy.deepcopy(reactions)

    revert_reaction = set_reactions

    def tree(self) -> list[Row]:
        nodes = {row["id"]: dict(row, replies=[]) for row in self._rows}
        roots = []
        for row in self._rows:
            node = nodes[row["id"]]
            parent = nodes.get(row.get("parent_id"))
            if parent is not None:
                parent["replies"].append(node)
            else:
                roots.append(node)
        return roots
