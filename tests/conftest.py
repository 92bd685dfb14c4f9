from pathlib import Path
from typing import List, Dict

import pytest

from backend import DataManager
from config import Settings


class FakeAgent:
    """Stands in for GPTAgent; replays a canned model reply."""

    def __init__(self, reply: str):
        self.reply = reply
        self.prompts: List[Dict[str, str]] = []

    def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append({"system": system_prompt, "user": user_prompt})
        return self.reply


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        app_name="data-alchemist",
        log_level="INFO",
        upload_dir=str(tmp_path / "uploads"),
        export_dir=str(tmp_path / "exports"),
        github_token=None,
        ai_endpoint="https://models.example.invalid/inference",
        ai_model="test-model",
        ai_temperature=0.0,
        ai_max_tokens=100,
        ai_sample_rows=5,
    )


@pytest.fixture()
def clients() -> List[Dict[str, str]]:
    return [
        {"ClientID": "C1", "ClientName": "Acme", "PriorityLevel": "3", "RequestedTaskIDs": "T1,T2", "AttributesJSON": '{"urgent": true}'},
        {"ClientID": "C2", "ClientName": "Globex", "PriorityLevel": "1", "RequestedTaskIDs": "T2", "AttributesJSON": ""},
    ]


@pytest.fixture()
def workers() -> List[Dict[str, str]]:
    return [
        {"WorkerID": "W1", "WorkerName": "Ann", "Skills": "cook, clean"},
        {"WorkerID": "W2", "WorkerName": "Bob", "Skills": "drive"},
    ]


@pytest.fixture()
def tasks() -> List[Dict[str, str]]:
    return [
        {"TaskID": "T1", "TaskName": "Lunch", "Duration": "10", "RequiredSkills": "[cook]"},
        {"TaskID": "T2", "TaskName": "Tidy", "Duration": "12", "RequiredSkills": "[cook, clean]"},
        {"TaskID": "T3", "TaskName": "Deliver", "Duration": "40", "RequiredSkills": "drive"},
    ]


@pytest.fixture()
def data_manager(test_settings, clients, workers, tasks) -> DataManager:
    dm = DataManager(test_settings)
    dm.set_batch("clients", clients)
    dm.set_batch("workers", workers)
    dm.set_batch("tasks", tasks)
    return dm


@pytest.fixture()
def make_agent():
    return FakeAgent
