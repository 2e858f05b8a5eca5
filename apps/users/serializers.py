# apps/users/serializers.py
from rest_framework import serializers
from .models import CustomUser


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomUser
        fields = ('id', 'username', 'email', 'first_name', 'last_name', 'phone_number',
                  'role', 'is_active')
        read_only_fields = ('role', 'is_active')
        ref_name = 'CustomUserSerializer'


class StaffCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=True, min_length=8)
    role = serializers.ChoiceField(choices=[
        CustomUser.ROLE_DOCTOR,
        CustomUser.ROLE_PHARMACIST,
        CustomUser.ROLE_RECEPTIONIST,
    ])

    class Meta:
        model = CustomUser
        fields = ('id', 'username', 'email', 'phone_number', 'password', 'first_name',
                  'last_name', 'role')

    def validate(self, attrs):
        if CustomUser.objects.filter(username=attrs.get('username')).exists():
            raise serializers.ValidationError({"message": "Username already taken"})

        email = attrs.get('email')
        if email and CustomUser.objects.filter(email=email).exists():
            raise serializers.ValidationError({"message": "Email already in use"})

        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = CustomUser(**validated_data)
        user.set_password(password)
        user.save()
        return user
