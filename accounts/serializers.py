from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        email = attrs.get("email")
        password = attrs.get("password")

        user = authenticate(email=email, password=password)
        if not user:
            raise serializers.ValidationError({"non_field_errors": "Invalid credentials"})
        if not user.is_active:
            raise serializers.ValidationError({"non_field_errors": "User account inactive"})

        refresh = RefreshToken.for_user(user)

        return {
            "user": user,
            "message": "Login Successful",
            "accessToken": str(refresh.access_token),
            "refreshToken": str(refresh),
        }


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['name', 'email', 'mobile_number', 'role']
        read_only_fields = ['email', 'role']
