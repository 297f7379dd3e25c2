"""Shared fixtures: a controllable clock and realistic tool payloads."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


FINISH_DECISIONS_PAYLOAD = {
    'version': 3,
    'rooms': [
        {
            'id': 'room_kitchen',
            'name': 'Kitchen',
            'type': 'kitchen',
            'systemKey': 'kitchen',
            'decisions': [
                {
                    'id': 'dec_counter',
                    'title': 'Countertop',
                    'category': 'surfaces',
                    'status': 'deciding',
                    'dueDate': '2026-04-01',
                    'notes': 'Budget is tight, ask about remnants.',
                    'createdByEmail': 'owner@example.com',
                    'comments': [
                        {
                            'id': 'c_1',
                            'text': 'Quartz holds up better.',
                            'authorName': 'Dana',
                            'authorEmail': 'dana@example.com',
                            'createdAt': '2026-02-20T10:00:00Z',
                            'refOptionLabel': 'Quartz',
                        },
                    ],
                    'options': [
                        {
                            'id': 'opt_quartz',
                            'name': 'Quartz',
                            'isSelected': True,
                            'notes': 'Supplier quoted 1200.',
                            'price': 1200,
                            'images': [
                                {
                                    'id': 'img_q',
                                    'url': 'https://cdn.example.com/quartz.jpg',
                                    'thumbnailUrl': 'https://cdn.example.com/quartz_t.jpg',
                                    'caption': 'Quartz sample',
                                    'uploadedBy': 'owner@example.com',
                                },
                            ],
                            'heroImageId': 'img_q',
                        },
                    ],
                },
            ],
        },
        {
            'id': 'room_bath',
            'name': 'Bathroom',
            'type': 'bathroom',
            'decisions': [
                {
                    'id': 'dec_tile',
                    'title': 'Floor tile',
                    'status': 'selected',
                    'notes': 'Contractor prefers 12x24.',
                    'comments': [],
                    'options': [],
                },
            ],
        },
        {
            'id': 'room_office',
            'name': 'Office',
            'type': 'office',
            'decisions': [],
        },
    ],
}

MOOD_BOARDS_PAYLOAD = {
    'version': 1,
    'boards': [
        {
            'id': 'board_living',
            'name': 'Living Room',
            'ideas': [
                {
                    'id': 'idea_sofa',
                    'name': 'Green sofa',
                    'notes': 'Check fabric durability.',
                    'sourceUrl': 'https://shop.example.com/sofa',
                    'sourceTitle': 'Sofa Shop',
                    'tags': ['seating'],
                    'images': ['https://cdn.example.com/sofa.jpg'],
                    'heroImageId': None,
                    'reactions': [{'email': 'dana@example.com', 'reaction': 'love'}],
                },
            ],
            'comments': [
                {
                    'id': 'mc_1',
                    'text': 'Too bright?',
                    'authorName': 'Sam',
                    'authorEmail': 'sam@example.com',
                    'refIdeaId': 'idea_sofa',
                },
            ],
        },
        {
            'id': 'board_kitchen',
            'name': 'Kitchen',
            'ideas': [
                {
                    'id': 'idea_lights',
                    'name': 'Pendant lights',
                    'notes': 'Measure ceiling height.',
                    'images': [],
                },
            ],
            'comments': [],
        },
        {
            'id': 'board_exterior',
            'name': 'Exterior',
            'ideas': [],
            'comments': [],
        },
    ],
}

PUNCHLIST_PAYLOAD = {
    'version': 2,
    'items': [
        {
            'id': 'pl_1',
            'itemNumber': 1,
            'title': 'Touch up paint',
            'location': 'Kitchen',
            'status': 'OPEN',
            'assigneeLabel': 'Painter',
            'notes': 'Use eggshell finish.',
            'createdByEmail': 'owner@example.com',
            'comments': [
                {
                    'id': 'pc_1',
                    'text': 'Done on the left wall.',
                    'authorName': 'Pat',
                    'authorEmail': 'pat@example.com',
                },
            ],
            'photos': [
                {
                    'id': 'ph_1',
                    'url': 'https://cdn.example.com/wall.jpg',
                    'thumbnailUrl': 'https://cdn.example.com/wall_t.jpg',
                    'storageKey': 'private/wall.jpg',
                },
            ],
        },
        {
            'id': 'pl_2',
            'itemNumber': 2,
            'title': 'Fix cabinet door',
            'location': 'Kitchen',
            'status': 'IN_PROGRESS',
            'assigneeLabel': 'Carpenter',
        },
        {
            'id': 'pl_3',
            'itemNumber': 3,
            'title': 'Replace outlet cover',
            'location': 'Garage',
            'status': 'OPEN',
            'assigneeLabel': 'Electrician',
        },
        {
            'id': 'pl_4',
            'itemNumber': 4,
            'title': 'Caulk tub',
            'location': 'Bathroom',
            'status': 'DONE',
            'assigneeLabel': 'Painter',
        },
    ],
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def finish_payload() -> dict:
    return copy.deepcopy(FINISH_DECISIONS_PAYLOAD)


@pytest.fixture
def mood_payload() -> dict:
    return copy.deepcopy(MOOD_BOARDS_PAYLOAD)


@pytest.fixture
def punch_payload() -> dict:
    return copy.deepcopy(PUNCHLIST_PAYLOAD)
