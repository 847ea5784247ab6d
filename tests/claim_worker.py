#!/usr/bin/env python
"""Helper script used by tests/test_concurrent_claim.py.

Usage: python claim_worker.py <base_dir> <team> <task_id> <owner>

Attempts to claim the given task and prints one of:
 - SUCCESS  (exit 0)
 - ALREADY  (exit 2)  -> task already claimed or not claimable
 - ERROR    (exit 3)  -> unexpected error
"""
import sys
import traceback


def main(argv):
    if len(argv) < 5:
        print("USAGE: claim_worker.py <base_dir> <team> <task_id> <owner>")
        return 3
    base_dir, team, task_id, owner = argv[1:5]

    # Import here so the script can be executed as a separate process
    try:
        from safe_claim.claim import TaskClaimer
    except Exception as e:
        print("ERROR importing TaskClaimer:", e)
        traceback.print_exc()
        return 3

    result = TaskClaimer(base_dir).try_claim(task_id, owner, team)
    if result.ok:
        print("SUCCESS", result.message)
        return 0
    if result.denied:
        # Expected path when another process already claimed the task
        print("ALREADY", result.message)
        return 2
    print("ERROR", result.message)
    return 3


if __name__ == "__main__":
    rc = main(sys.argv)
    sys.exit(rc)
