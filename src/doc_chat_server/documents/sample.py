"""
Built-in sample document, seeded on first start when the store is empty.
"""

from __future__ import annotations

from .models import Document


SAMPLE_DOCUMENT_ID = "sample-chainsaw-man"
SAMPLE_DOCUMENT_NAME = "chainsaw_man_info.txt"

SAMPLE_DOCUMENT_CONTENT = """\
Chainsaw Man (チェンソーマン)

Overview:
Chainsaw Man is a Japanese manga series written and illustrated by Tatsuki Fujimoto. Part 1 was serialized in Weekly Shonen Jump from 2019 to 2021, and Part 2 has been serializing in Shonen Jump+ since 2022.

Main Characters:
- Denji: The protagonist. He gains the ability to transform into Chainsaw Man after making a contract with Pochita, the Chainsaw Devil.
- Makima: Leader of Public Safety Devil Hunter Special Division 4. The Control Devil.
- Power: A Blood Fiend. Denji's companion and partner.
- Aki Hayakawa: A Devil Hunter working for Public Safety. Denji's senior and mentor.

Plot Summary:
Denji is a poor young man who works as a Devil Hunter with Pochita, the Chainsaw Devil, to pay off his father's debt. One day, he is killed by the Zombie Devil, but Pochita becomes Denji's heart, reviving him as Chainsaw Man. After this transformation, he is recruited by Makima to join Public Safety and begins a new life as a Devil Hunter.

Key Features:
- Unique storytelling with unpredictable plot developments
- Perfect blend of dark fantasy and action
- Deep character psychology and emotional depth
- Social commentary and philosophical themes

Media Adaptations:
In October 2022, an anime adaptation produced by MAPPA was released. It gained massive attention for its exceptional animation quality and direction.

Awards and Recognition:
- Winner of the 66th Shogakukan Manga Award (Shonen Category)
- Ranked #1 in the Next Breakthrough Manga Rankings
- Ranked #1 in "Kono Manga ga Sugoi!" 2021 (Male Readers Category)"""


def build_sample_document() -> Document:
    data = SAMPLE_DOCUMENT_CONTENT.encode("utf-8")
    return Document(
        id=SAMPLE_DOCUMENT_ID,
        name=SAMPLE_DOCUMENT_NAME,
        content=SAMPLE_DOCUMENT_CONTENT,
        size=len(data),
    )
