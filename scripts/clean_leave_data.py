# Remove duplicate leave grant records and recompute userLeaves balances
# Usage: set env MONGODB_URI and MONGODB_DB_NAME, then run from a machine with access to MongoDB
# Example: python scripts/clean_leave_data.py

import os
from collections import defaultdict

from pymongo import ASCENDING, MongoClient

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://mongodb:27017")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "military")

client = MongoClient(MONGODB_URI)
db = client[MONGODB_DB_NAME]

schedules = db["schedules"]
leaves = db["leaves"]
user_leaves = db["userLeaves"]


def _day(value):
    if hasattr(value, "date"):
        return value.date().isoformat()
    return str(value or "")[:10]


# 1) 같은 인원 / 같은 휴가 종류 / 같은 날 부여 이력은 가장 먼저 생성된 것만 남김
seen = set()
duplicate_ids = []
for grant in schedules.find({"type": "grantedLeave"}).sort("createdAt", ASCENDING):
    key = (grant.get("userId"), grant.get("leaveType"), _day(grant.get("grantedAt")))
    if key in seen:
        duplicate_ids.append(grant["_id"])
    else:
        seen.add(key)

if duplicate_ids:
    schedules.delete_many({"_id": {"$in": duplicate_ids}})
print(f"Removed {len(duplicate_ids)} duplicate grant record(s)")

# 2) 부여 일수 합계 - 승인된 휴가 일수 합계로 잔여 일수 재계산
granted = defaultdict(int)
for grant in schedules.find({"type": "grantedLeave"}):
    granted[(grant.get("userId"), (grant.get("leaveType") or "").casefold())] += int(grant.get("days") or 0)

used = defaultdict(int)
for leave in leaves.find({"status": "approved"}):
    used[(leave.get("personId"), (leave.get("leaveType") or "").casefold())] += int(leave.get("duration") or 0)

updated = 0
for balance in user_leaves.find():
    person_id = balance["_id"]
    leave_types = []
    for entry in balance.get("leaveTypes") or []:
        entry = dict(entry)
        key = (person_id, (entry.get("name") or "").casefold())
        # 부여 이력이 없는 종류(기본 부여분)는 days를 그대로 둔다
        if key in granted:
            entry["days"] = granted[key]
        entry["remainingDays"] = max(0, int(entry.get("days") or 0) - used[key])
        leave_types.append(entry)

    user_leaves.update_one({"_id": person_id}, {"$set": {"leaveTypes": leave_types}})
    updated += 1

print(f"Recomputed leave balances for {updated} person(s)")
