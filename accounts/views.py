from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated

from .serializers import LoginSerializer, ProfileSerializer


# Login
class LoginView(APIView):
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if serializer.is_valid():
            data = serializer.validated_data
            user = data.get("user")

            # Staff profile linked to this login, if any
            staff = user.staff_profiles.filter(is_active=True).select_related('location').first()

            return Response({
                "success": True,
                "message": data.get("message"),
                "email": user.email,
                "role": user.role,
                "staff_id": staff.id if staff else None,
                "location_id": staff.location_id if staff else None,
                "accessToken": data.get("accessToken"),
                "refreshToken": data.get("refreshToken"),
            }, status=status.HTTP_200_OK)

        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class ProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = ProfileSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def put(self, request):
        serializer = ProfileSerializer(request.user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response({"message": "Profile updated successfully", "profile": serializer.data}, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
