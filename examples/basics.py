from scopewatch import HandleAlreadyActive, Tracker

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Tracking a value")
print("-" * 100)
print()

# Any value with == and deepcopy support can be tracked.
current_age = Tracker(30, name="age")

log_on_change = lambda old, new: print(f"Age changed: {old} -> {new}")

# Callbacks run right after a write handle is released with a changed value.
current_age.subscribe(log_on_change)

with current_age.begin_mutation() as age:
    age += 1  # This will notify: 30 -> 31

with current_age.begin_mutation() as age:
    age.value = 40
    age.value = 31  # Reverted before release, so nothing is reported

current_age.unsubscribe(log_on_change)
current_age.modify(lambda age: age + 1)  # This will not print anything

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Mutating containers in place")
print("-" * 100)
print()

profile = Tracker({"name": "Alice", "tags": []}, name="profile")
changes = profile.listen()

with profile.begin_mutation() as handle:
    handle["name"] = "Charlie"
    handle["tags"].append("admin")

# The subscription holds every change until you take it.
old, new = changes.get_nowait()
print(f"Before: {old}")
print(f"After:  {new}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("One writer at a time")
print("-" * 100)
print()

with profile.begin_mutation():
    try:
        profile.begin_mutation()
    except HandleAlreadyActive as e:
        print(f"Refused: {e}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Tearing down")
print("-" * 100)
print()

profile.modify(lambda p: {**p, "name": "Dana"})
profile.close()

# After close, iterating a subscription drains what is left and stops.
for old, new in changes:
    print(f"Last change: {old['name']} -> {new['name']}")
print("Subscription ended")
