from sparkshare.models.user import User  # noqa: F401
from sparkshare.models.friend_invitation import FriendInvitation  # noqa: F401
from sparkshare.models.friendship import Friendship  # noqa: F401
from sparkshare.models.shared_item import SharedItem  # noqa: F401
