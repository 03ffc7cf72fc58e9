from __future__ import annotations

import argparse
import random
import sys

from google.api_core import exceptions as gexc
from google.auth import exceptions as gauth_exc
from google.cloud import firestore

from gymtrack import settings

LIKELY_CAUSES = [
    "Application default credentials are missing (run `gcloud auth application-default login`).",
    "GCP_PROJECT points at the wrong project.",
    "The database id does not exist in this project.",
    "Security rules or IAM deny writes to this database.",
    "No network connectivity to firestore.googleapis.com.",
]


def probe(client: firestore.Client, collection: str, database: str) -> list[str]:
    """Write two probe documents and return their ids."""
    ref = client.collection(collection)
    ids = []
    for doc in (
        {
            "name": f"probe 1 in {database}",
            "message": f"write to database '{database}' succeeded",
            "value": 400,
            "createdAt": firestore.SERVER_TIMESTAMP,
        },
        {
            "name": f"probe 2 in {database}",
            "status": f"OK_DB_{database}",
            "randomNumber": random.randint(0, 3999),
            "createdAt": firestore.SERVER_TIMESTAMP,
        },
    ):
        _, doc_ref = ref.add(doc)
        ids.append(doc_ref.id)
    return ids


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Check that the Firestore database is reachable and writable.")
    ap.add_argument("--project", default=settings.GCP_PROJECT, help="GCP project id (default: $GCP_PROJECT)")
    ap.add_argument("--database", default=settings.FIRESTORE_DATABASE, help="Firestore database id")
    ap.add_argument("--collection", default="connectionCheck", help="collection to write probe documents to")
    args = ap.parse_args(argv)

    kwargs = {"database": args.database}
    if args.project:
        kwargs["project"] = args.project

    try:
        client = firestore.Client(**kwargs)
        ids = probe(client, args.collection, args.database)
    except (gexc.GoogleAPIError, gauth_exc.GoogleAuthError, OSError) as exc:
        print(f"Firestore check failed for database '{args.database}': {exc}", file=sys.stderr)
        print("Possible causes:", file=sys.stderr)
        for i, cause in enumerate(LIKELY_CAUSES, 1):
            print(f"  {i}. {cause}", file=sys.stderr)
        return 1

    print(f"Wrote {len(ids)} documents to '{args.collection}' in database '{args.database}': {', '.join(ids)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
