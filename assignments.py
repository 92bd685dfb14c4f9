from typing import List, Dict, Any

from validators import parse_priority, parse_skills, split_list


class Assignment:
    def __init__(self, client_id: str, task_id: str, suggested_worker_ids: List[str]):
        self.client_id = client_id
        self.task_id = task_id
        self.suggested_worker_ids = suggested_worker_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clientId": self.client_id,
            "taskId": self.task_id,
            "suggestedWorkerIds": list(self.suggested_worker_ids),
        }

    def __repr__(self):
        return f"Assignment({self.client_id!r}, {self.task_id!r}, {self.suggested_worker_ids!r})"


def _priority_key(client: Dict[str, Any]):
    priority = parse_priority(client.get("PriorityLevel"))
    # Unreadable priorities go after every numbered one.
    return (priority is None, priority or 0)


def get_prioritized_assignments(
    clients: List[Dict[str, Any]],
    tasks: List[Dict[str, Any]],
    workers: List[Dict[str, Any]],
) -> List[Assignment]:
    """
    Greedy, advisory matching: clients are visited by ascending PriorityLevel
    (stable), and for every requested task that exists we list each worker
    whose skills cover all of the task's required skills. No capacity or
    conflict handling.
    """
    task_map = {str(task.get("TaskID")).strip(): task for task in tasks if task.get("TaskID") is not None}
    worker_skills = [(worker, set(split_list(worker.get("Skills") or ""))) for worker in workers]

    assignments = []
    for client in sorted(clients, key=_priority_key):
        for task_id in split_list(client.get("RequestedTaskIDs") or ""):
            task = task_map.get(task_id) if task_id else None
            if task is None:
                continue

            needed = set(parse_skills(task.get("RequiredSkills")))
            suitable = [worker.get("WorkerID", "") for worker, skills in worker_skills if needed <= skills]
            assignments.append(Assignment(client.get("ClientID", ""), task_id, suitable))

    return assignments
