import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Question:
    text: str
    answer: str
    alternates: Tuple[str, ...] = ()


QUESTIONS = [
    Question('What is the capital of Serbia?', 'Belgrade', ('Beograd',)),
    Question('Which planet is known as the Red Planet?', 'Mars'),
    Question('How many players sit at an Asocijacije table?', 'four', ('4',)),
    Question('What is the largest ocean on Earth?', 'Pacific', ('Pacific Ocean',)),
    Question('Which river flows through Belgrade alongside the Sava?', 'Danube', ('Dunav',)),
    Question('What gas do plants absorb from the air?', 'carbon dioxide', ('CO2',)),
    Question('Who painted the Mona Lisa?', 'Leonardo da Vinci', ('da Vinci', 'Leonardo')),
    Question('How many sides does a hexagon have?', 'six', ('6',)),
    Question('Which inventor born in Smiljan pioneered alternating current?', 'Nikola Tesla', ('Tesla',)),
    Question('What is the chemical symbol for gold?', 'Au'),
    Question('Which instrument has 88 keys?', 'piano'),
    Question('What is the tallest mountain in the world?', 'Everest', ('Mount Everest',)),
    Question('In which sport would you perform a slam dunk?', 'basketball', ('kosarka',)),
    Question('What is the freezing point of water in Celsius?', 'zero', ('0',)),
    Question('Which language has the most native speakers?', 'Mandarin', ('Chinese',)),
    Question('What do bees make?', 'honey', ('med',)),
    Question('How many continents are there?', 'seven', ('7',)),
    Question('Which metal is liquid at room temperature?', 'mercury'),
    Question('What is the largest mammal?', 'blue whale', ('whale',)),
    Question('Which city hosts the Eiffel Tower?', 'Paris'),
]


def _normalize(text: str) -> str:
    return ' '.join((text or '').casefold().split())


def is_correct(message: str, question: Question) -> bool:
    """Loose answer check for chat messages.

    Exact match against the answer or an alternate wins; for answers of at
    least 3 characters, containment in either direction also counts.
    """
    guess = _normalize(message)
    if not guess:
        return False
    for candidate in (question.answer,) + question.alternates:
        answer = _normalize(candidate)
        if guess == answer:
            return True
        if len(answer) >= 3 and (answer in guess or (len(guess) >= 3 and guess in answer)):
            return True
    return False


@dataclass
class QuizState:
    """Running quiz inside a room: tally, unused question pool, pending question.

    The tally is keyed by connection sid; `names` holds the name shown for each.
    """
    questions: List[Question] = field(default_factory=lambda: list(QUESTIONS))
    scores: Dict[str, int] = field(default_factory=dict)
    names: Dict[str, str] = field(default_factory=dict)
    pool: List[int] = field(default_factory=list)
    current: Optional[int] = None
    time_left: int = 0

    @property
    def question(self) -> Optional[Question]:
        if self.current is None:
            return None
        return self.questions[self.current]

    def next_question(self, rng: random.Random) -> Question:
        if not self.pool:
            self.pool = list(range(len(self.questions)))
            rng.shuffle(self.pool)
        self.current = self.pool.pop()
        return self.questions[self.current]

    def award(self, sid: str, name: str) -> int:
        self.scores[sid] = self.scores.get(sid, 0) + 1
        self.names[sid] = name
        self.current = None
        return self.scores[sid]

    def standings(self) -> List[dict]:
        ranked = sorted(self.scores.items(), key=lambda item: -item[1])
        return [{'name': self.names.get(sid, ''), 'points': points} for sid, points in ranked]

    def to_dict(self) -> dict:
        q = self.question
        return {
            'active': True,
            'scores': self.standings(),
            'question': q.text if q else None,
            'time_left': self.time_left if q else None,
        }
