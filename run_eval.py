#!/usr/bin/env python
import argparse
import csv
import datetime as dt
import os
from typing import List, Tuple

import requests

# Fester Evaluationskatalog (Einzel-Turn + Follow-up)
EVAL_QUESTIONS: List[Tuple[int, List[str]]] = [
    (1, ["Where can I study quietly on Sunday?"]),
    (2, ["Suggest a dorm under €450", "is it quiet?"]),
    (3, ["How do I register my address (Anmeldung) in Munich?"]),
    (4, ["Which libraries have wifi and are open late?"]),
]

FIELDNAMES = [
    "timestamp",
    "run_name",
    "question_id",
    "question_text",
    "repetition",
    "ok",
    "status_code",
    "error_message",
    "rewritten_question",
    "intent",
    "answer_len_chars",
    "answer",
    "match_count",
    "top_match",
]


def call_query(base_url: str, turns: List[str], timeout: float = 120.0) -> requests.Response:
    url = base_url.rstrip("/") + "/query"
    # Verlauf ohne Assistant-Antworten: reicht für den Rewriter
    messages = [{"role": "user", "content": t} for t in turns]
    return requests.post(url, json={"messages": messages}, timeout=timeout)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Führt eine Evaluation über /query gegen den Munich-RAG-Service aus."
    )
    parser.add_argument("--base-url", default="http://localhost:8080")
    parser.add_argument("--run-name", required=True, help="Name des Durchlaufs.")
    parser.add_argument("--out", default="eval_results.csv", help="Pfad zur Ausgabedatei (CSV).")
    parser.add_argument("--repetitions", type=int, default=1, help="Wie oft jede Frage gestellt wird.")
    args = parser.parse_args()

    write_header = not os.path.exists(args.out)

    with open(args.out, "a", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        if write_header:
            writer.writeheader()

        for q_id, turns in EVAL_QUESTIONS:
            q_text = " | ".join(turns)
            for rep in range(1, args.repetitions + 1):
                print(f"[{args.run_name}] Frage {q_id} (Run {rep}): {q_text}")
                row = {
                    "timestamp": dt.datetime.now().isoformat(timespec="seconds"),
                    "run_name": args.run_name,
                    "question_id": q_id,
                    "question_text": q_text,
                    "repetition": rep,
                }

                try:
                    resp = call_query(args.base_url, turns)
                    data = resp.json()
                except (requests.RequestException, ValueError) as e:
                    # Backend antwortet nicht oder kein JSON
                    row.update(ok=False, status_code=None, error_message=str(e), answer_len_chars=0, match_count=0)
                    writer.writerow(row)
                    continue

                matches = data.get("matches") or []
                answer = data.get("answer") or ""
                top = matches[0] if matches else {}
                row.update(
                    ok=resp.ok,
                    status_code=resp.status_code,
                    error_message=data.get("error"),
                    rewritten_question=data.get("rewrittenQuestion"),
                    intent=data.get("intent"),
                    answer_len_chars=len(answer),
                    answer=answer,
                    match_count=len(matches),
                    top_match=f"{top.get('type')}: {top.get('title')}" if top else "",
                )
                writer.writerow(row)

    print(f"Fertig. Ergebnisse in {args.out}.")


if __name__ == "__main__":
    main()
