from podmarket.infra.log import get_logger

logger = get_logger('podmarket.seed')

CATEGORIES = [
    {"name": "Java", "slug": "java", "icon": "☕",
     "description": "The Java language, the JVM and enterprise frameworks"},
    {"name": "JavaScript", "slug": "javascript", "icon": "🟨",
     "description": "Modern JavaScript, Node.js and frontend frameworks"},
    {"name": "Azure", "slug": "azure", "icon": "☁️",
     "description": "Microsoft Azure: cloud, DevOps and distributed architecture"},
    {"name": "Architecture", "slug": "architecture", "icon": "🏗️",
     "description": "Software architecture and design patterns"},
]

# (category slug, title, slug, duration minutes, price in grosze)
PODCASTS = [
    ("java", "Kolekcja Map w Java", "java-map-collections", 45, 2900),
    ("java", "Kolekcja Set w Java", "java-set-collections", 38, 2900),
    ("java", "Java Concurrency", "java-concurrency", 52, 3900),
    ("java", "Java Memory Model", "java-memory-model", 48, 3500),
    ("java", "Garbage Collection", "java-garbage-collection", 41, 3500),
    ("javascript", "Event Loop i Asynchroniczność", "js-event-loop", 43, 3200),
    ("javascript", "Prototypes i Inheritance", "js-prototypes", 39, 2900),
    ("javascript", "V8 Engine Optimizations", "js-v8-optimizations", 36, 3500),
    ("azure", "Azure Functions Deep Dive", "azure-functions", 47, 4200),
    ("azure", "Cosmos DB Architecture", "azure-cosmos-db", 52, 4500),
    ("architecture", "Microservices Patterns", "arch-microservices", 55, 4900),
    ("architecture", "Domain Driven Design", "arch-ddd", 48, 5200),
]


def seed_catalog(store):
    """Seeds the demo catalog. Existing slugs are left untouched.

    Returns (categories created, podcasts created).
    """
    categories = {}
    created_categories = 0
    for data in CATEGORIES:
        category = store.get_category_by_slug(data["slug"])
        if category is None:
            category = store.create_category(dict(data))
            created_categories += 1
        categories[data["slug"]] = category

    created_podcasts = 0
    for category_slug, title, slug, duration, price in PODCASTS:
        if store.get_podcast_by_slug(slug) is not None:
            continue
        store.create_podcast({
            "title": title,
            "slug": slug,
            "duration": duration,
            "price": price,
            "category_id": categories[category_slug].id,
            "is_active": True,
        })
        created_podcasts += 1

    logger.info("Catalog seeded", categories=created_categories, podcasts=created_podcasts)
    return created_categories, created_podcasts
