from lockbox import Model, ModelConfig
from lockbox.attributes import BooleanAttribute, EncryptedAttribute, NumberAttribute, StringAttribute


class User(Model):
    model_config = ModelConfig(table="users")

    pk = StringAttribute(hash_key=True)
    sk = StringAttribute(range_key=True)
    name = StringAttribute()
    age = NumberAttribute(default=0)
    active = BooleanAttribute(default=True)
    email = EncryptedAttribute()
    born_on = EncryptedAttribute(type="datetime")
