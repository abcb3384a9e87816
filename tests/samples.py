from __future__ import annotations

from pathlib import Path
import textwrap

SCHEMA_SOURCE = textwrap.dedent(
    """
    N::Person {
        INDEX name: String,
        age: I32,
    }

    N::User {
        name: String,
        email: String DEFAULT "none",
    }

    E::Follows {
        From: User,
        To: User,
        Properties: {
            since: Date,
        }
    }

    V::Document {
        content: String,
    }
    """
).lstrip()

QUERIES_SOURCE = textwrap.dedent(
    """
    QUERY CreatePerson(name: String, age: I32) =>
        person <- AddN<Person>({name: name, age: age})
        RETURN person

    QUERY FollowUser(from_id: ID, to_id: ID) =>
        follower <- N<User>(from_id)
        followed <- N<User>(to_id)
        edge <- AddE<Follows>::From(follower)::To(followed)
        RETURN edge

    QUERY Followers(user_id: ID) =>
        users <- N<User>(user_id)::In<Follows>
        RETURN users::{name, email}
    """
).lstrip()


def write(directory: Path, name: str, content: str) -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


def position_of(text: str, needle: str, occurrence: int = 0, offset: int = 0) -> tuple[int, int]:
    """0-based (line, character) of ``needle`` in ``text``, shifted by ``offset``."""
    index = -1
    for _ in range(occurrence + 1):
        index = text.index(needle, index + 1)
    index += offset
    line = text.count("\n", 0, index)
    character = index - (text.rfind("\n", 0, index) + 1)
    return line, character
