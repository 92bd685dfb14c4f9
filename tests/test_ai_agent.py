import pytest

from ai_agent import GPTAgent, nl_to_rule, recommend_rules
from exceptions import RuleSuggestionError


def test_recommend_rules_reads_fenced_json_array(make_agent, clients, workers, tasks) -> None:
    agent = make_agent('```json\n[{"type": "coRun", "tasks": ["T1", "T2"]}, {"type": "loadLimit", "workerGroup": "G1"}]\n```')

    rules = recommend_rules(agent, clients, workers, tasks)

    assert rules == [
        {"type": "coRun", "tasks": ["T1", "T2"]},
        {"type": "loadLimit", "workerGroup": "G1"},
    ]
    assert '"TaskID": "T3"' in agent.prompts[0]["user"]


def test_recommend_rules_tolerates_surrounding_text(make_agent, clients, workers, tasks) -> None:
    agent = make_agent('Here you go: [{"type": "coRun", "tasks": ["T2", "T3"]}] hope it helps')

    assert recommend_rules(agent, clients, workers, tasks) == [{"type": "coRun", "tasks": ["T2", "T3"]}]


def test_recommend_rules_samples_rows(make_agent, clients, workers, tasks) -> None:
    agent = make_agent("[]")

    recommend_rules(agent, clients, workers, tasks, sample_rows=1)

    assert "T2" not in agent.prompts[0]["user"].split("Tasks:")[1].split("Workers:")[0]


@pytest.mark.parametrize("reply", ["no rules today", '{"type": "coRun"}'])
def test_recommend_rules_rejects_unusable_reply(reply, make_agent, clients, workers, tasks) -> None:
    with pytest.raises(RuleSuggestionError):
        recommend_rules(make_agent(reply), clients, workers, tasks)


def test_nl_to_rule_parses_object(make_agent, clients, workers, tasks) -> None:
    agent = make_agent('{"type": "coRun", "tasks": ["T1", "T3"]}')

    rule = nl_to_rule(agent, "run lunch and delivery together", clients, workers, tasks)

    assert rule == {"type": "coRun", "tasks": ["T1", "T3"]}
    assert "run lunch and delivery together" in agent.prompts[0]["user"]


def test_nl_to_rule_returns_none_on_garbage(make_agent, clients, workers, tasks) -> None:
    assert nl_to_rule(make_agent("sorry, I can't"), "whatever", clients, workers, tasks) is None


def test_gpt_agent_requires_token(test_settings) -> None:
    with pytest.raises(ValueError):
        GPTAgent(test_settings)
