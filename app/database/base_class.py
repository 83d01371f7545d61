from sqlalchemy.orm import declarative_base, declared_attr


class CustomBase:
    # Generate __tablename__ automatically based on class name
    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()


# Use CustomBase as the base for all models
Base = declarative_base(cls=CustomBase)
