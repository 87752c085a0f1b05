from rest_framework import serializers

from .models import User


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "name",
            "email",
            "role",
            "phone_number",
            "date_joined",
        ]
        read_only_fields = ["id", "role", "date_joined"]


class UserBasicSerializer(serializers.ModelSerializer):
    """
    Lite user representation nested inside routes and bookings.
    """
    class Meta:
        model = User
        fields = ["id", "name", "email"]


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate_email(self, value):
        return value.lower()


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False, default='user')

    class Meta:
        model = User
        fields = ['name', 'email', 'password', 'role', 'phone_number']
        extra_kwargs = {
            'email': {'validators': []},
            'phone_number': {'required': False},
        }

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("User already exists")
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            name=validated_data['name'],
            role=validated_data.get('role', 'user'),
            phone_number=validated_data.get('phone_number', ''),
        )


class ProfileUpdateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False, min_length=6)

    class Meta:
        model = User
        fields = ['name', 'email', 'phone_number', 'password']
        extra_kwargs = {'email': {'validators': []}}

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("Email already in use")
        return value

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class RoleSwitchSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=["user", "driver"])
