from __future__ import annotations

from tailor.types import Bullet, Experience, Profile

DEFAULT_EXPERIENCES: list[dict[str, object]] = [
    {
        "id": "exp-1",
        "company": "FinTech Global",
        "role": "Senior Python Developer",
        "start_date": "2021-03",
        "end_date": "Present",
        "location": "New York, NY",
        "bullets": [
            (
                "b1",
                "Utilized advanced methodologies to comprehensively audit the financial systems, "
                "ensuring total accuracy.",
            ),
            ("b2", "Directed a team of 4 analysts to automate monthly reporting, saving 12 hours per week."),
            ("b3", "Refactored legacy codebase to improve maintainability and reduce technical debt."),
        ],
    },
    {
        "id": "exp-2",
        "company": "DataCorp Solutions",
        "role": "Software Engineer",
        "start_date": "2018-06",
        "end_date": "2021-02",
        "location": "Remote",
        "bullets": [
            ("b4", "Spearheaded the migration of on-premise servers to AWS, achieving great synergy."),
            ("b5", "Built internal tooling for data processing using Python and Pandas."),
        ],
    },
]


def default_master_profile() -> Profile:
    """Example master profile shown before the user imports or edits their own."""
    experiences = []
    for item in DEFAULT_EXPERIENCES:
        bullets = [Bullet(id=bullet_id, content=content) for bullet_id, content in item["bullets"]]
        experiences.append(
            Experience(
                id=str(item["id"]),
                company=str(item["company"]),
                role=str(item["role"]),
                start_date=str(item["start_date"]),
                end_date=str(item["end_date"]),
                location=str(item["location"]),
                bullets=bullets,
            )
        )

    return Profile(
        name="Alex Mercer",
        email="alex.mercer@example.com",
        phone="555-0199",
        location="New York, NY",
        summary=(
            "Senior Backend Engineer focused on scalable architecture and data consistency. "
            "Proven track record of reducing latency and optimizing database queries in "
            "high-throughput environments."
        ),
        experiences=experiences,
    )
