from validators import cross_validate, required_skills, valid_task_ids


def test_bracketed_required_skills_cover_worker_skill() -> None:
    tasks = [{"TaskID": "T1", "RequiredSkills": "[cook, clean]"}]
    workers = [{"WorkerID": "W1", "Skills": "cook"}]

    errors = cross_validate([], workers, tasks)

    assert [error for error in errors if error.error_type == "UnusedSkill"] == []


def test_unknown_requested_task_is_reported_against_client_row() -> None:
    clients = [{"ClientID": "C1", "PriorityLevel": "1", "RequestedTaskIDs": "T9"}]

    errors = cross_validate(clients, [], [])

    assert len(errors) == 1
    error = errors[0]
    assert error.error_type == "InvalidTaskReference"
    assert error.entity == "clients"
    assert error.row == 0
    assert error.field == "RequestedTaskIDs"
    assert error.message == "TaskID T9 does not exist in tasks"


def test_valid_task_ids_are_trimmed() -> None:
    tasks = [{"TaskID": " T1 "}, {"TaskID": "T2"}, {"TaskID": "T2"}]

    assert valid_task_ids(tasks) == {"T1", "T2"}


def test_required_skills_drop_empty_tokens() -> None:
    tasks = [{"RequiredSkills": "[a, , b]"}, {"RequiredSkills": ""}, {"TaskID": "T3"}]

    assert required_skills(tasks) == {"a", "b"}


def test_emission_order_is_clients_then_workers_in_token_order(clients, workers, tasks) -> None:
    clients = clients + [{"ClientID": "C3", "RequestedTaskIDs": "T8, T1 ,, T7"}]
    workers = workers + [{"WorkerID": "W3", "Skills": "paint,cook, sing"}]

    errors = cross_validate(clients, workers, tasks)

    assert [(e.entity, e.row, e.message) for e in errors] == [
        ("clients", 2, "TaskID T8 does not exist in tasks"),
        ("clients", 2, "TaskID T7 does not exist in tasks"),
        ("workers", 2, "Skill paint is not required by any task"),
        ("workers", 2, "Skill sing is not required by any task"),
    ]


def test_missing_batches_are_treated_as_empty() -> None:
    assert cross_validate(None, None, None) == []

    errors = cross_validate(None, [{"WorkerID": "W1", "Skills": "weld"}], None)
    assert [(e.error_type, e.entity, e.row, e.field) for e in errors] == [("UnusedSkill", "workers", 0, "Skills")]


def test_cross_errors_never_use_cross_entity(clients, workers) -> None:
    errors = cross_validate(clients, workers, [])

    assert errors
    assert {error.entity for error in errors} <= {"clients", "workers"}
