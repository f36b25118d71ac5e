import json
import re
from typing import List, NamedTuple, Sequence

from generate.models import ConversationItem

UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]+")


class ExportFile(NamedTuple):
    content: bytes
    file_name: str


def export_file_name(ai_name: str, count: int) -> str:
    safe_name = UNSAFE_FILENAME_CHARS.sub("_", ai_name.strip()).strip("_") or "assistant"
    return f"{safe_name}_conversations_dataset_{count}_samples.json"


def build_export(items: Sequence[ConversationItem], ai_name: str) -> ExportFile:
    records = [item.model_dump() for item in items]
    text = json.dumps(records, ensure_ascii=False, indent=2)
    return ExportFile(content=text.encode("utf-8"), file_name=export_file_name(ai_name, len(records)))


def load_export(data: bytes | str) -> List[ConversationItem]:
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    records = json.loads(data)
    if not isinstance(records, list):
        raise ValueError("Unsupported JSON format: expected an array of conversations.")
    return [ConversationItem.model_validate(record) for record in records]
