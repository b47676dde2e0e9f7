# scripts/check_jobs.py
import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import argparse
from db.session import SessionLocal
from db import models
from tasks.extraction_tasks import extract_interview, sweep_stale_jobs


def main():
    parser = argparse.ArgumentParser(description="List extraction jobs that have not reached a terminal state.")
    parser.add_argument("--requeue", action="store_true", help="run the stale-job sweep now")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        jobs = (
            db.query(models.ExtractionJob)
            .filter(models.ExtractionJob.status.in_([models.ProcessStatus.queued, models.ProcessStatus.processing]))
            .order_by(models.ExtractionJob.id.asc())
            .all()
        )
        print(f"Open jobs: {len(jobs)}")
        for j in jobs:
            print(f"  id={j.id} user={j.user_id} source={j.source.value} status={j.status.value} attempts={j.attempts} updated_at={j.updated_at}")

        if args.requeue:
            res = sweep_stale_jobs(db, dispatch=extract_interview.delay)
            print(f"requeued={res['requeued']} gave_up={res['gave_up']}")
    finally:
        db.close()

if __name__ == "__main__":
    main()
