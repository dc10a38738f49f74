"""Models package."""

from .account import Account
from .post import Post
from .comment import Comment
