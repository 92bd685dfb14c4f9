from assignments import get_prioritized_assignments


def test_workers_must_cover_every_required_skill() -> None:
    clients = [{"ClientID": "C1", "PriorityLevel": "1", "RequestedTaskIDs": "T1"}]
    tasks = [{"TaskID": "T1", "RequiredSkills": "[weld, paint]"}]
    workers = [
        {"WorkerID": "W1", "Skills": "weld"},
        {"WorkerID": "W2", "Skills": "paint, weld"},
        {"WorkerID": "W3", "Skills": "paint,weld,drive"},
    ]

    assignments = get_prioritized_assignments(clients, tasks, workers)

    assert [a.to_dict() for a in assignments] == [
        {"clientId": "C1", "taskId": "T1", "suggestedWorkerIds": ["W2", "W3"]},
    ]


def test_no_qualified_worker_gives_empty_suggestion() -> None:
    clients = [{"ClientID": "C1", "PriorityLevel": "1", "RequestedTaskIDs": "T1"}]
    tasks = [{"TaskID": "T1", "RequiredSkills": "[weld]"}]

    assignments = get_prioritized_assignments(clients, tasks, [{"WorkerID": "W1", "Skills": "drive"}])

    assert assignments[0].suggested_worker_ids == []


def test_worker_with_required_skill_is_suggested() -> None:
    clients = [{"ClientID": "C1", "PriorityLevel": "1", "RequestedTaskIDs": "T1"}]
    tasks = [{"TaskID": "T1", "RequiredSkills": "[cook]"}]
    workers = [{"WorkerID": "W1", "Skills": "cook"}]

    assignments = get_prioritized_assignments(clients, tasks, workers)

    assert len(assignments) == 1
    assert assignments[0].suggested_worker_ids == ["W1"]


def test_clients_are_processed_by_ascending_priority() -> None:
    clients = [
        {"ClientID": "C3", "PriorityLevel": "3", "RequestedTaskIDs": "T3"},
        {"ClientID": "C1", "PriorityLevel": "1", "RequestedTaskIDs": "T1"},
        {"ClientID": "C2", "PriorityLevel": "2", "RequestedTaskIDs": "T2"},
    ]
    tasks = [{"TaskID": f"T{i}", "RequiredSkills": ""} for i in (1, 2, 3)]

    assignments = get_prioritized_assignments(clients, tasks, [])

    assert [a.client_id for a in assignments] == ["C1", "C2", "C3"]


def test_equal_priorities_keep_original_order_and_bad_priorities_go_last() -> None:
    clients = [
        {"ClientID": "CX", "PriorityLevel": "urgent", "RequestedTaskIDs": "T1"},
        {"ClientID": "CA", "PriorityLevel": "2", "RequestedTaskIDs": "T1"},
        {"ClientID": "CB", "PriorityLevel": "2", "RequestedTaskIDs": "T1"},
    ]
    tasks = [{"TaskID": "T1", "RequiredSkills": ""}]

    assignments = get_prioritized_assignments(clients, tasks, [])

    assert [a.client_id for a in assignments] == ["CA", "CB", "CX"]


def test_unknown_requested_tasks_are_skipped(clients, tasks, workers) -> None:
    clients = [{"ClientID": "C9", "PriorityLevel": "1", "RequestedTaskIDs": "T9, T3,"}]

    assignments = get_prioritized_assignments(clients, tasks, workers)

    assert [a.to_dict() for a in assignments] == [
        {"clientId": "C9", "taskId": "T3", "suggestedWorkerIds": ["W2"]},
    ]


def test_fixture_batches(clients, tasks, workers) -> None:
    assignments = get_prioritized_assignments(clients, tasks, workers)

    assert [(a.client_id, a.task_id, a.suggested_worker_ids) for a in assignments] == [
        ("C2", "T2", ["W1"]),
        ("C1", "T1", ["W1"]),
        ("C1", "T2", ["W1"]),
    ]
