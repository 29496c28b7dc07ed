"""Question records and the parser for the question pool wire format.

The network payload and the cache file share one format: a JSON array of
objects, each with ``id`` (str), ``question`` (str), ``correct`` (0-based int)
and ``answers`` (list of str).
"""

from dataclasses import dataclass
from typing import Any, Iterable

import orjson

from quizsync.errors import InvalidRecord, MalformedContent

MIN_OPTIONS = 2


@dataclass(frozen=True)
class Record:
    """One quiz question.

    Attributes:
        id: Identifier, unique within its content set (e.g. 'T1A01')
        prompt: Question text
        correct_index: 0-based index of the correct entry in ``options``
        options: Answer options in their published order
    """

    id: str
    prompt: str
    correct_index: int
    options: tuple[str, ...]

    @property
    def correct_option(self) -> str:
        """Text of the correct answer."""
        return self.options[self.correct_index]

    @classmethod
    def from_wire(cls, item: Any, position: int = 0) -> "Record":
        """Build a record from one decoded wire object.

        Args:
            item: Decoded JSON value for one question
            position: Index of the item in its array, for error messages

        Returns:
            Validated Record

        Raises:
            MalformedContent: If fields are missing or have the wrong type
            InvalidRecord: If the correct index does not point at an option
        """
        if not isinstance(item, dict):
            raise MalformedContent(
                f"Record {position} is {type(item).__name__}, expected object"
            )

        record_id = item.get("id")
        question = item.get("question")
        correct = item.get("correct")
        answers = item.get("answers")

        if not isinstance(record_id, str):
            raise MalformedContent(f"Record {position} has no string 'id'")
        if not isinstance(question, str):
            raise MalformedContent(f"Record {record_id} has no string 'question'")
        # bool is an int subclass; true/false is not an index
        if not isinstance(correct, int) or isinstance(correct, bool):
            raise MalformedContent(f"Record {record_id} has no integer 'correct'")
        if not isinstance(answers, list) or not all(
            isinstance(a, str) for a in answers
        ):
            raise MalformedContent(
                f"Record {record_id} 'answers' must be a list of strings"
            )

        if len(answers) < MIN_OPTIONS:
            raise InvalidRecord(
                f"Record {record_id} has {len(answers)} answers, "
                f"at least {MIN_OPTIONS} required"
            )
        if not 0 <= correct < len(answers):
            raise InvalidRecord(
                f"Record {record_id} correct index {correct} out of range "
                f"for {len(answers)} answers"
            )

        return cls(
            id=record_id,
            prompt=question,
            correct_index=correct,
            options=tuple(answers),
        )

    def to_wire(self) -> dict[str, Any]:
        """Convert back to the wire object shape."""
        return {
            "id": self.id,
            "question": self.prompt,
            "correct": self.correct_index,
            "answers": list(self.options),
        }


def parse_records(data: bytes) -> tuple[Record, ...]:
    """Decode raw bytes into an ordered tuple of validated records.

    The whole batch is rejected if any record is bad; partial content is
    never returned.

    Args:
        data: Raw payload from the network or the cache file

    Returns:
        Records in payload order

    Raises:
        MalformedContent: If the bytes are not a JSON array of question
            objects, the array is empty, or two records share an id
        InvalidRecord: If a record's correct index is out of range or it has
            fewer than two answers

    Examples:
        >>> records = parse_records(
        ...     b'[{"id":"T1","question":"Q?","correct":1,"answers":["A","B","C"]}]'
        ... )
        >>> records[0].correct_option
        'B'
    """
    try:
        decoded = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise MalformedContent(f"Content is not valid JSON: {e}") from e

    if not isinstance(decoded, list):
        raise MalformedContent(
            f"Content is a JSON {type(decoded).__name__}, expected an array"
        )
    if not decoded:
        raise MalformedContent("Content contains no records")

    records = tuple(Record.from_wire(item, i) for i, item in enumerate(decoded))

    seen = set()
    for record in records:
        if record.id in seen:
            raise MalformedContent(f"Duplicate record id '{record.id}'")
        seen.add(record.id)

    return records


def dump_records(records: Iterable[Record]) -> bytes:
    """Encode records into the wire format.

    Args:
        records: Records to encode

    Returns:
        JSON array bytes
    """
    return orjson.dumps([r.to_wire() for r in records])
