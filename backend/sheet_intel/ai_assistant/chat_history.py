"""
Bounded conversation log kept alongside a worksheet analysis.
"""
from datetime import datetime, timezone
from typing import Dict, List


class ChatHistory:
    def __init__(self, max_turns: int = 12):
        self.max_turns = max_turns
        self._messages: List[Dict[str, str]] = []

    def add(self, role: str, content: str):
        self._messages.append({
            'role': role,
            'content': content,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        })
        # one turn = user message + assistant reply
        limit = self.max_turns * 2
        if len(self._messages) > limit:
            self._messages = self._messages[-limit:] if limit else []

    def recent(self, count: int) -> List[Dict[str, str]]:
        if count <= 0:
            return []
        return list(self._messages[-count:])

    def clear(self):
        self._messages = []

    @property
    def turns(self) -> int:
        return len(self._messages) // 2

    def to_list(self) -> List[Dict[str, str]]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
