from __future__ import annotations

import pytest

from config import PlannerConfig
from models import Subject
from rules import RulesEngine
from scheduler import Scheduler


@pytest.fixture
def config() -> PlannerConfig:
    return PlannerConfig()


@pytest.fixture
def rules(config: PlannerConfig) -> RulesEngine:
    return RulesEngine(config)


@pytest.fixture
def scheduler(rules: RulesEngine, config: PlannerConfig) -> Scheduler:
    return Scheduler(rules, config)


@pytest.fixture
def math_subject() -> Subject:
    return Subject(id="math", name="Math", priority="high", difficulty="hard", hours_needed=30)


@pytest.fixture
def history_subject() -> Subject:
    return Subject(id="history", name="History", priority="medium", difficulty="medium", hours_needed=20)


@pytest.fixture
def art_subject() -> Subject:
    return Subject(id="art", name="Art", priority="low", difficulty="easy", hours_needed=10)
