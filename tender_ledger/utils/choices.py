"""
Closed value sets for tender and bid fields
"""


class Choices:
    """Constant holder; ``values()`` lists the declared string constants"""

    @classmethod
    def values(cls):
        return [
            value for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        ]

    @classmethod
    def contains(cls, value) -> bool:
        return value in cls.values()


class TenderServiceType(Choices):
    CONSTRUCTION = "Construction"
    DELIVERY = "Delivery"
    MANUFACTURE = "Manufacture"


class BidAuthorType(Choices):
    ORGANIZATION = "Organization"
    USER = "User"


class BidDecision(Choices):
    APPROVED = "Approved"
    REJECTED = "Rejected"


class OrganizationType(Choices):
    IE = "IE"
    LLC = "LLC"
    JSC = "JSC"
