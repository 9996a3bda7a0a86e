"""Hand-maintained dashboard data with no upstream source."""

from __future__ import annotations

from typing import List

from lifedash.models import BookView, Shoe, ShoesView, SocialPost


CURRENT_BOOK = BookView(
    title="Project Hail Mary",
    author="Andy Weir",
    progress=67,
    cover_url="https://images-na.ssl-images-amazon.com/images/S/compressed.photo.goodreads.com/books/1597695864i/54493401.jpg",
)

RUNNING_SHOES = ShoesView(
    current=Shoe(brand="Nike", model="Pegasus 40", miles=187, max_miles=400),
    retired=[
        Shoe(brand="Hoka", model="Clifton 8", miles=423),
        Shoe(brand="Brooks", model="Ghost 14", miles=456),
    ],
)

SOCIAL_POSTS: List[SocialPost] = [
    SocialPost(url="https://picsum.photos/seed/1/400/400", caption="Brooklyn Bridge run"),
    SocialPost(url="https://picsum.photos/seed/2/400/400", caption="Coffee fuel"),
    SocialPost(url="https://picsum.photos/seed/3/400/400", caption="New kicks!"),
    SocialPost(url="https://picsum.photos/seed/4/400/400", caption="Sunset run"),
]
