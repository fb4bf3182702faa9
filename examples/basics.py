from sunduk import Store, StoreRegistry
from sunduk.devtools import ConsoleInspector

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining a store")
print("-" * 100)
print()


def initial_state():
    return {"name": "Richard", "title": "king", "age": 42}


# A store needs an initial value and a name.
item = Store(initial_state(), name="item")

# select() replays the current value immediately, then every change.
unsubscribe = item.select().subscribe(lambda data: print(f"Item: {data}"))

# Partial updates are shallow-merged into the current state.
item.update(age=43)
item.update({"title": "emperor"})

# get() reads synchronously.
print(f"Current name: {item.get()['name']}")

unsubscribe()
item.update(age=44)  # Nobody is listening anymore

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Derived streams")
print("-" * 100)
print()

# Project with >> and drop repeats with distinct().
age_group = (item.select() >> (lambda data: data["age"] // 10)).distinct(
    lambda a, b: a == b
)
age_group.subscribe(lambda decade: print(f"Age group: {decade}0s"))

item.update(age=45)  # Same decade, nothing printed
item.update(age=51)  # Prints the new decade

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Middlewares")
print("-" * 100)
print()


@item.add_middleware
def no_demotions(old, new):
    # Veto by returning the old state
    if old["title"] == "emperor" and new["title"] != "emperor":
        print("Demotion rejected")
        return old
    return new


item.update(title="peasant")
print(f"Title is still: {item.get()['title']}")

# reset() bypasses middlewares.
item.reset()
print(f"After reset: {item.get()}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Registry and devtools")
print("-" * 100)
print()

with StoreRegistry() as registry:
    settings = Store({"theme": "light"}, name="settings", registry=registry)
    session = Store({"user": None}, name="session", cache=30_000, registry=registry)

    inspector = ConsoleInspector(registry)
    inspector.attach()

    settings.update(theme="dark")
    session.set({"user": "alice"})

    inspector.render_snapshot()
    inspector.detach()

    session.destroy()
    settings.destroy()
